"""Axis strategy protocol and the shared rule-based axis.

Structure of an axis:
- ControlPoint: id + budget + pure evaluator returning a PointAward
- SubCriterion: 2-4 control points under a declared budget
- RuleBasedAxis: fixed sub-criteria, alert rules, recommendation threshold

Budgets are checked when an axis is constructed, so a miswired axis fails
at import rather than at scoring time.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple, Protocol, runtime_checkable

from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote
from torp.scoring.axis_configs import get_axis_config
from torp.scoring.context import ScoringContext
from torp.scoring.models import (
    Alert,
    AlertSeverity,
    AxisId,
    AxisScore,
    ControlPointScore,
    Recommendation,
    RecommendationPriority,
    SubCriteriaScore,
)
from torp.scoring.rules import Evidence, clamp, round_half_up

_BUDGET_TOLERANCE = 1e-9
DEFAULT_RECOMMENDATION_THRESHOLD = 50.0
TARGET_PERCENTAGE = 70.0


class PointAward(NamedTuple):
    """Raw outcome of a control-point decision tree."""

    points: float
    evidence: Evidence
    confidence: float


Evaluator = Callable[[Quote, EnrichmentBundle, ScoringContext], PointAward]


@runtime_checkable
class AxisStrategy(Protocol):
    """Protocol for the nine evaluation axes.

    Implementations are immutable and pure: the same inputs always
    produce the same AxisScore, and an axis never reads other axes.
    """

    @property
    def axis_id(self) -> AxisId:
        """Axis this strategy evaluates."""
        ...

    def evaluate(
        self,
        quote: Quote,
        enrichment: EnrichmentBundle,
        context: ScoringContext,
    ) -> AxisScore:
        """Score the quote on this axis.

        Never raises for missing business data.
        """
        ...


@dataclass(frozen=True)
class ControlPoint:
    id: str
    max_points: float
    evaluator: Evaluator

    def evaluate(
        self,
        quote: Quote,
        enrichment: EnrichmentBundle,
        context: ScoringContext,
    ) -> ControlPointScore:
        """Run the evaluator, then round half-up and clamp to the budget."""
        award = self.evaluator(quote, enrichment, context)
        score = clamp(round_half_up(award.points), 0, self.max_points)
        return ControlPointScore(
            id=self.id,
            score=score,
            max_points=self.max_points,
            justification=award.evidence.render(),
            confidence=clamp(award.confidence, 0.0, 100.0),
        )


@dataclass(frozen=True)
class SubCriterion:
    id: str
    label: str
    max_points: float
    control_points: tuple[ControlPoint, ...]

    def __post_init__(self) -> None:
        declared = sum(cp.max_points for cp in self.control_points)
        if abs(declared - self.max_points) > _BUDGET_TOLERANCE:
            raise ValueError(
                f"Sub-criterion '{self.id}' declares {self.max_points} points "
                f"but its control points total {declared}"
            )

    def evaluate(
        self,
        quote: Quote,
        enrichment: EnrichmentBundle,
        context: ScoringContext,
    ) -> SubCriteriaScore:
        scores = [cp.evaluate(quote, enrichment, context) for cp in self.control_points]
        return SubCriteriaScore(
            id=self.id,
            score=sum(s.score for s in scores),
            max_points=self.max_points,
            control_points=scores,
        )


@dataclass(frozen=True)
class AlertRule:
    """Raise an alert when an axis or one of its sub-criteria falls below a threshold.

    With sub_criteria_id unset the rule watches the whole axis.
    """

    severity: AlertSeverity
    threshold: float
    message: str
    impact: str
    recommendation: str | None = None
    sub_criteria_id: str | None = None

    def check(self, axis: AxisScore) -> Alert | None:
        if self.sub_criteria_id is None:
            percentage = axis.percentage
        else:
            sub = next(s for s in axis.sub_criteria if s.id == self.sub_criteria_id)
            percentage = sub.percentage
        if percentage >= self.threshold:
            return None
        return Alert(
            severity=self.severity,
            axis_id=axis.axis_id,
            sub_criteria_id=self.sub_criteria_id,
            message=self.message,
            impact=self.impact,
            recommendation=self.recommendation,
        )


def percentage_of(score: float, max_points: float) -> float:
    if max_points <= 0:
        return 0.0
    return score / max_points * 100


def shortfall_recommendation(
    axis_id: AxisId,
    sub: SubCriterion,
    result: SubCriteriaScore,
) -> Recommendation:
    """Medium-priority recommendation for a sub-criterion well below target."""
    upside = max(0, round_half_up(sub.max_points * TARGET_PERCENTAGE / 100 - result.score))
    return Recommendation(
        priority=RecommendationPriority.MEDIUM,
        category=axis_id.value,
        suggestion=(
            f"Ask the contractor to strengthen {sub.label} "
            f"({round_half_up(result.percentage)}% of points obtained)"
        ),
        potential_impact=f"+{upside} points possible",
        actionable=True,
    )


class RuleBasedAxis:
    """Axis assembled from declarative sub-criteria and alert rules."""

    def __init__(
        self,
        *,
        axis_id: AxisId,
        sub_criteria: tuple[SubCriterion, ...],
        alert_rules: tuple[AlertRule, ...] = (),
        recommendation_threshold: float = DEFAULT_RECOMMENDATION_THRESHOLD,
    ) -> None:
        """Initialize and check the axis budget.

        Args:
            axis_id: Axis identifier.
            sub_criteria: Sub-criteria in report order.
            alert_rules: Alert rules checked after scoring.
            recommendation_threshold: Sub-criteria below this percentage
                produce a recommendation.

        Raises:
            ValueError: If sub-criteria budgets do not total the axis budget,
                or an alert rule names an unknown sub-criterion.
        """
        config = get_axis_config(axis_id)
        declared = sum(sub.max_points for sub in sub_criteria)
        if abs(declared - config.max_points) > _BUDGET_TOLERANCE:
            raise ValueError(
                f"Axis '{axis_id}' budget is {config.max_points} "
                f"but its sub-criteria total {declared}"
            )
        known = {sub.id for sub in sub_criteria}
        for rule in alert_rules:
            if rule.sub_criteria_id is not None and rule.sub_criteria_id not in known:
                raise ValueError(
                    f"Alert rule on axis '{axis_id}' names unknown "
                    f"sub-criterion '{rule.sub_criteria_id}'"
                )
        self._axis_id = axis_id
        self._max_points = float(config.max_points)
        self._sub_criteria = sub_criteria
        self._alert_rules = alert_rules
        self._recommendation_threshold = recommendation_threshold

    @property
    def axis_id(self) -> AxisId:
        return self._axis_id

    @property
    def sub_criteria(self) -> tuple[SubCriterion, ...]:
        return self._sub_criteria

    def evaluate(
        self,
        quote: Quote,
        enrichment: EnrichmentBundle,
        context: ScoringContext,
    ) -> AxisScore:
        results = [sub.evaluate(quote, enrichment, context) for sub in self._sub_criteria]
        score = sum(r.score for r in results)

        recommendations = [
            shortfall_recommendation(self._axis_id, sub, result)
            for sub, result in zip(self._sub_criteria, results, strict=True)
            if result.percentage < self._recommendation_threshold
        ]
        axis = AxisScore(
            axis_id=self._axis_id,
            score=score,
            max_points=self._max_points,
            percentage=percentage_of(score, self._max_points),
            sub_criteria=results,
            recommendations=recommendations,
        )
        alerts = [a for a in (rule.check(axis) for rule in self._alert_rules) if a is not None]
        if not alerts:
            return axis
        return axis.model_copy(update={"alerts": alerts})
