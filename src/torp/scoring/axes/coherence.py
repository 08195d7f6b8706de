"""Coherence axis (150 points): does the quote answer what the client asked for?

Requires the client's stated need. Without it the axis does not guess:
it returns 0/150 with one informational alert and one recommendation
asking for the need on the next evaluation.

- request-fit (70): requested work present, solution type, constraints
- gap-analysis (50): missing and superfluous items
- need-understanding (30): relevance, technical justification, clarity
"""

from __future__ import annotations

import re

from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote
from torp.scoring.axes.base import (
    ControlPoint,
    PointAward,
    RuleBasedAxis,
    SubCriterion,
    percentage_of,
)
from torp.scoring.context import ScoringContext, StatedNeed
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
from torp.scoring.rules import Evidence, Tier, points_at_least, round_half_up

_STOPWORDS = frozenset(
    "le la les un une des de du et ou mais pour par avec dans sur je tu il nous vous "
    "mon ma mes votre vos est sont ai avez avoir être".split()
)
_NON_WORD = re.compile(r"[^\w\s]")
_MIN_KEYWORD_LENGTH = 4

_MATCH_TIERS: tuple[tuple[float, float, float], ...] = (
    (0.8, 40, 90),
    (0.6, 30, 80),
    (0.4, 20, 70),
    (0.2, 10, 60),
)
_NEED_TYPE_PROJECTS: dict[str, tuple[str, ...]] = {
    "urgence": ("maintenance", "reparation", "réparation", "intervention"),
    "renovation": ("renovation", "rénovation", "refection", "réfection", "amelioration"),
    "amelioration": ("renovation", "rénovation", "optimisation", "amelioration"),
    "construction": ("construction", "installation"),
    "maintenance": ("maintenance", "entretien"),
}
_URGENT_NEED = ("urgence", "urgent", "rapide", "immédiat")
_URGENT_RESPONSE = ("urgence", "urgent", "rapide")
_PROBLEM_SOLUTIONS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("panne", ("remplacement", "réparation", "dépannage")),
    ("fuite", ("étanchéité", "réparation", "remplacement")),
    ("vétuste", ("rénovation", "remplacement", "modernisation")),
    ("isolation", ("isolation", "isolant", "thermique")),
    ("infiltration", ("étanchéité", "drainage", "réparation")),
)
_JUSTIFICATION_MARKERS = ("parce que", "afin de", "pour")
_MISSING_TIERS = (Tier(0, 25), Tier(2, 20), Tier(4, 15))

_ALERT_BELOW = 40.0
_CRITICAL_BELOW = 20.0
_ALERT_MIN_POINTS = 10
_ADVICE_BELOW = 70.0
_ADVICE_MIN_POINTS = 15


def extract_keywords(text: str) -> list[str]:
    """Significant words of a request: lowercased, unique, order preserved.

    Words of three letters or fewer and French stopwords are dropped.
    """
    words = _NON_WORD.sub(" ", text.lower()).split()
    seen: dict[str, None] = {}
    for word in words:
        if len(word) >= _MIN_KEYWORD_LENGTH and word not in _STOPWORDS:
            seen.setdefault(word, None)
    return list(seen)


def _need(context: ScoringContext) -> StatedNeed:
    if context.stated_need is None:
        raise ValueError("Coherence evaluators require a stated need")
    return context.stated_need


def _description(quote: Quote) -> str:
    return (quote.extracted_data.project.description or "").lower()


def _quote_content(quote: Quote) -> str:
    parts = [quote.extracted_data.project.description or ""]
    parts.extend(item.description for item in quote.items)
    return " ".join(parts).lower()


def _requested_work(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    requested = extract_keywords(_need(context).client_request)
    content = _quote_content(quote)
    for word in requested:
        ev.check(word in content, word)
    matched = sum(1 for word in requested if word in content)
    ratio = matched / len(requested) if requested else 0.0
    ev.note(f"{matched}/{len(requested)} requested items found in the quote")
    for threshold, points, confidence in _MATCH_TIERS:
        if ratio >= threshold:
            return PointAward(points, ev, confidence)
    return PointAward(0, ev, 85)


def _solution_fit(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    need = _need(context)
    project_type = (quote.extracted_data.project.project_type or quote.project_type).lower()
    expected = _NEED_TYPE_PROJECTS.get((need.need_type or "").lower(), ())
    if ev.check(
        any(kind in project_type for kind in expected), "project type matching the need"
    ):
        return PointAward(20, ev, 65)
    urgent_need = ev.check(
        any(word in need.client_need.lower() for word in _URGENT_NEED), "urgent need"
    )
    description = _description(quote)
    urgent_response = ev.check(
        any(word in description for word in _URGENT_RESPONSE), "urgent response in quote"
    )
    if urgent_need and urgent_response:
        return PointAward(15, ev, 65)
    if urgent_need:
        return PointAward(5, ev, 65)
    return PointAward(10, ev, 65)


def _constraints(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    constraints = _need(context).constraints
    if constraints is None:
        ev.absent("stated constraints")
        return PointAward(10, ev, 50)

    points = 10.0
    violations = 0
    total = quote.total
    if constraints.max_budget and total:
        if ev.check(total > constraints.max_budget, "budget ceiling exceeded"):
            excess = (total - constraints.max_budget) / constraints.max_budget
            ev.note(f"budget exceeded by {excess:.1%}")
            points -= 5
            violations += 1
    if constraints.desired_deadline:
        timeline = quote.extracted_data.project.timeline
        announced = timeline is not None and bool(timeline.duration)
        if not ev.check(announced, "announced duration for the desired deadline"):
            points -= 3
            violations += 1
    other = (constraints.other or "").lower()
    if len(other) > 10:
        addressed = other[:20] in _description(quote)
        if not ev.check(addressed, "other constraints addressed"):
            points -= 2
            violations += 1
    return PointAward(max(0.0, points), ev, 85 if violations else 80)


def _missing_items(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    content = _quote_content(quote)
    missing = [w for w in extract_keywords(_need(context).client_request) if w not in content]
    if missing:
        ev.note("missing: " + ", ".join(missing))
    else:
        ev.found("every requested item")
    for tier in _MISSING_TIERS:
        if len(missing) <= tier.threshold:
            return PointAward(tier.points, ev, 70)
    return PointAward(5, ev, 70)


def _superfluous_items(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    request_words = len(_need(context).client_request.split(" "))
    count = len(quote.items)
    ev.note(f"{count} quote lines for a {request_words}-word request")
    if count > request_words * 0.5 and count > 10:
        ev.found("possibly oversized quote")
        return PointAward(15, ev, 60)
    if count > request_words and count > 15:
        ev.found("very detailed quote")
        return PointAward(10, ev, 60)
    ev.absent("superfluous items")
    return PointAward(25, ev, 60)


def _solution_relevance(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    need = _need(context).client_need.lower()
    description = _description(quote)
    for problem, solutions in _PROBLEM_SOLUTIONS:
        if problem in need:
            ev.found(f"problem '{problem}'")
            if ev.check(
                any(s in description for s in solutions), f"solution for '{problem}'"
            ):
                return PointAward(15, ev, 85)
            return PointAward(5, ev, 75)
    ev.absent("identifiable problem in the stated need")
    return PointAward(10, ev, 65)


def _technical_justification(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    description = _description(quote)
    justified = any(marker in description for marker in _JUSTIFICATION_MARKERS) or any(
        "conforme" in item.description.lower() for item in quote.items
    )
    if ev.check(justified, "justified technical choices"):
        return PointAward(10, ev, 70)
    return PointAward(5, ev, 60)


def _response_clarity(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    length = len(_description(quote))
    ev.check(length > 0, "project description")
    ev.note(f"description of {length} characters")
    points = points_at_least(length, (Tier(51, 5), Tier(21, 3)), 1)
    return PointAward(points, ev, 70 if length > 50 else 60)


_SUB_CRITERIA = (
    SubCriterion(
        id="request-fit",
        label="fit with the client request",
        max_points=70,
        control_points=(
            ControlPoint("requested-work", 40, _requested_work),
            ControlPoint("solution-fit", 20, _solution_fit),
            ControlPoint("constraints", 10, _constraints),
        ),
    ),
    SubCriterion(
        id="gap-analysis",
        label="gaps between request and quote",
        max_points=50,
        control_points=(
            ControlPoint("missing-items", 25, _missing_items),
            ControlPoint("superfluous-items", 25, _superfluous_items),
        ),
    ),
    SubCriterion(
        id="need-understanding",
        label="understanding of the need",
        max_points=30,
        control_points=(
            ControlPoint("solution-relevance", 15, _solution_relevance),
            ControlPoint("technical-justification", 10, _technical_justification),
            ControlPoint("response-clarity", 5, _response_clarity),
        ),
    ),
)


def _control_point_findings(
    sub: SubCriteriaScore,
    point: ControlPointScore,
) -> tuple[Alert | None, Recommendation | None]:
    """Alert for a weak control point, recommendation for a middling one."""
    percentage = percentage_of(point.score, point.max_points)
    lost = round_half_up(point.max_points - point.score)
    if percentage < _ALERT_BELOW and point.max_points >= _ALERT_MIN_POINTS:
        severity = (
            AlertSeverity.CRITICAL if percentage < _CRITICAL_BELOW else AlertSeverity.MAJOR
        )
        alert = Alert(
            severity=severity,
            axis_id=AxisId.COHERENCE,
            sub_criteria_id=sub.id,
            control_point_id=point.id,
            message=f"Inconsistency detected: {point.justification}",
            impact=f"{lost} points lost",
            recommendation="Check that the quote matches the work you requested",
        )
        return alert, None
    if percentage < _ADVICE_BELOW and point.max_points >= _ADVICE_MIN_POINTS:
        return None, Recommendation(
            priority=RecommendationPriority.MEDIUM,
            category=AxisId.COHERENCE.value,
            suggestion=f"Improve {point.id}: {point.justification}",
            potential_impact=f"+{lost} points possible",
            actionable=True,
        )
    return None, None


class CoherenceAxis:
    """Request-versus-quote coherence, scored only with a stated need."""

    def __init__(self) -> None:
        self._scorer = RuleBasedAxis(
            axis_id=AxisId.COHERENCE,
            sub_criteria=_SUB_CRITERIA,
            recommendation_threshold=0.0,
        )

    @property
    def axis_id(self) -> AxisId:
        return AxisId.COHERENCE

    @property
    def sub_criteria(self) -> tuple[SubCriterion, ...]:
        return self._scorer.sub_criteria

    def evaluate(
        self,
        quote: Quote,
        enrichment: EnrichmentBundle,
        context: ScoringContext,
    ) -> AxisScore:
        if context.stated_need is None:
            return self._without_stated_need()

        scored = self._scorer.evaluate(quote, enrichment, context)
        alerts: list[Alert] = []
        recommendations: list[Recommendation] = []
        for sub in scored.sub_criteria:
            for point in sub.control_points:
                alert, recommendation = _control_point_findings(sub, point)
                if alert is not None:
                    alerts.append(alert)
                if recommendation is not None:
                    recommendations.append(recommendation)
        return scored.model_copy(
            update={"alerts": alerts, "recommendations": recommendations}
        )

    def _without_stated_need(self) -> AxisScore:
        max_points = sum(sub.max_points for sub in _SUB_CRITERIA)
        return AxisScore(
            axis_id=AxisId.COHERENCE,
            score=0.0,
            max_points=max_points,
            percentage=0.0,
            sub_criteria=[
                SubCriteriaScore(id=sub.id, score=0.0, max_points=sub.max_points)
                for sub in _SUB_CRITERIA
            ],
            alerts=[
                Alert(
                    severity=AlertSeverity.MINOR,
                    axis_id=AxisId.COHERENCE,
                    message="Request-quote coherence data unavailable",
                    impact="Coherence between the client request and the quote was not analysed",
                    recommendation="Describe the need and constraints on the next evaluation",
                )
            ],
            recommendations=[
                Recommendation(
                    priority=RecommendationPriority.LOW,
                    category=AxisId.COHERENCE.value,
                    suggestion="Provide the stated need with the next quote evaluation",
                    potential_impact=f"+{int(max_points)} potential points on the final score",
                    actionable=True,
                )
            ],
        )


COHERENCE_AXIS = CoherenceAxis()
