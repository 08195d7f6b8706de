"""Scoring orchestrator.

Runs the nine axis strategies, re-weights them for the caller profile,
normalizes to the 1350-point scale, optionally blends an ML prediction,
then grades and assembles the final report.

Design requirements:
- Fail closed on a malformed context, before any axis runs
- Never fail on missing business data or on ML provider trouble
- Deterministic: identical inputs give identical reports apart from the
  evaluation timestamp
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import UTC, datetime
from typing import Any

from torp.audit.sink import AuditSink, AuditSinkError
from torp.ml.features import extract_features
from torp.ml.provider import MLPrediction, MLProvider
from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote
from torp.scoring.axes import AxisStrategy
from torp.scoring.axis_configs import SCORING_VERSION, get_axis_config
from torp.scoring.config import ScoringConfig, load_scoring_config
from torp.scoring.context import ScoringContext, ScoringContextError, build_scoring_context
from torp.scoring.models import (
    GLOBAL_MAX_POINTS,
    PRIORITY_RANK,
    Alert,
    AlertSeverity,
    AxisScore,
    FinalScore,
    Grade,
    MLAdjustment,
    Recommendation,
    RecommendationPriority,
    ScoringMetadata,
)
from torp.scoring.registry import AxisStrategyRegistry, build_default_registry
from torp.scoring.rules import clamp, round_half_up

logger = logging.getLogger(__name__)

GRADE_THRESHOLDS: tuple[tuple[float, Grade], ...] = (
    (1215, Grade.A_PLUS),
    (1080, Grade.A),
    (945, Grade.B),
    (810, Grade.C),
    (675, Grade.D),
)

MAX_ML_WEIGHT = 0.3
BASE_CONFIDENCE = 70.0
CONFIDENCE_BONUSES: tuple[tuple[str, float], ...] = (
    ("financial_data", 10.0),
    ("reputation", 5.0),
    ("legal_status_details", 5.0),
    ("price_references", 5.0),
    ("regional_data", 3.0),
    ("compliance_data", 2.0),
)

WEAK_AXIS_PERCENTAGE = 60.0
WEAK_AXIS_TARGET = 70.0
MAX_WEAK_AXIS_RECOMMENDATIONS = 2
SEEK_ALTERNATIVES_BELOW = 600.0
VERIFY_BELOW = 840.0

_OVERALL_SEVERITIES = frozenset({AlertSeverity.CRITICAL, AlertSeverity.MAJOR})


class ScoringEngineError(Exception):
    """Raised when scoring fails for a reason other than bad input."""


def grade_for_score(score: float) -> Grade:
    """Map a score on the 1350-point scale to a letter grade."""
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return Grade.E


def _has_fact(enrichment: EnrichmentBundle, fact: str) -> bool:
    company = enrichment.company_or_empty
    if fact == "price_references":
        return bool(enrichment.price_references)
    if fact in ("regional_data", "compliance_data"):
        return getattr(enrichment, fact) is not None
    return getattr(company, fact) is not None


def compute_confidence(enrichment: EnrichmentBundle, ml_confidence: float | None = None) -> float:
    """Confidence level 0-100 from the enrichment facts present.

    Args:
        enrichment: Enrichment bundle of the request.
        ml_confidence: Provider confidence (0-1) when an ML blend was applied.

    Returns:
        Confidence rounded to one decimal.
    """
    confidence = BASE_CONFIDENCE + sum(
        bonus for fact, bonus in CONFIDENCE_BONUSES if _has_fact(enrichment, fact)
    )
    confidence = min(100.0, confidence)
    if ml_confidence is not None:
        confidence = confidence * 0.7 + ml_confidence * 100 * 0.3
    return round(confidence, 1)


def blend_ml(base_score: float, prediction: MLPrediction) -> tuple[float, float]:
    """Blend a prediction into the base score.

    Returns:
        (final_score, ml_weight). The weight is the prediction confidence
        scaled to at most 0.3, so a zero-confidence prediction has no effect.
    """
    ml_weight = min(prediction.confidence, 1.0) * MAX_ML_WEIGHT
    final = base_score * (1 - ml_weight) + prediction.predicted_score * ml_weight
    return clamp(final, 0.0, GLOBAL_MAX_POINTS), ml_weight


def apply_profile_weight(axis: AxisScore, weight: float) -> AxisScore:
    """Carry the profile-weighted score and budget; the percentage is unchanged."""
    config = get_axis_config(axis.axis_id)
    return axis.model_copy(
        update={"score": axis.score * weight, "max_points": config.max_points * weight}
    )


def collect_overall_alerts(axis_scores: list[AxisScore]) -> list[Alert]:
    return [
        alert
        for axis in axis_scores
        for alert in axis.alerts
        if alert.severity in _OVERALL_SEVERITIES
    ]


def build_overall_recommendations(
    axis_scores: list[AxisScore], base_score: float
) -> list[Recommendation]:
    """Merge axis recommendations with the global ones, highest priority first.

    Args:
        axis_scores: Profile-weighted axis scores in scheme order.
        base_score: Score before any ML blend.
    """
    recommendations = [rec for axis in axis_scores for rec in axis.recommendations]

    weak_axes = sorted(
        (axis for axis in axis_scores if axis.percentage < WEAK_AXIS_PERCENTAGE),
        key=lambda axis: axis.percentage,
    )
    for axis in weak_axes[:MAX_WEAK_AXIS_RECOMMENDATIONS]:
        name = get_axis_config(axis.axis_id).name
        upside = round_half_up((WEAK_AXIS_TARGET - axis.percentage) * axis.max_points / 100)
        recommendations.append(
            Recommendation(
                priority=RecommendationPriority.HIGH,
                category=axis.axis_id.value,
                suggestion=f"Improve {name} ({round_half_up(axis.percentage)}% currently)",
                potential_impact=f"+{upside} points possible",
            )
        )

    if base_score < SEEK_ALTERNATIVES_BELOW:
        recommendations.append(
            Recommendation(
                priority=RecommendationPriority.HIGH,
                category="general",
                suggestion="Score too low: seek alternative quotes from other contractors",
                potential_impact="Avoid a high-risk contract",
            )
        )
    elif base_score < VERIFY_BELOW:
        recommendations.append(
            Recommendation(
                priority=RecommendationPriority.MEDIUM,
                category="general",
                suggestion="Perform additional verification before signing",
                potential_impact="Lower the risk of disputes",
            )
        )

    return sorted(recommendations, key=lambda rec: PRIORITY_RANK[rec.priority])


def enriched_data_sources(enrichment: EnrichmentBundle) -> list[str]:
    company = enrichment.company_or_empty
    sources: list[str] = []
    if company.siret:
        sources.append("Sirene")
    if company.financial_data is not None:
        sources.append("Infogreffe")
    if enrichment.price_references:
        sources.append("Price references")
    if enrichment.regional_data is not None:
        sources.append("Regional data")
    if enrichment.compliance_data is not None:
        sources.append("Compliance")
    if enrichment.weather_data is not None:
        sources.append("Weather")
    return sources


def _request_prediction(
    provider: MLProvider, quote: Quote, enrichment: EnrichmentBundle, base_score: float
) -> MLPrediction:
    features = extract_features(quote, enrichment)
    return provider.predict(features, base_score)


class ScoringEngine:
    """Scores quotes against the nine-axis scheme.

    Holds no state between calls; one instance can serve concurrent callers.
    """

    def __init__(
        self,
        *,
        registry: AxisStrategyRegistry | None = None,
        ml_provider: MLProvider | None = None,
        audit_sink: AuditSink | None = None,
        config: ScoringConfig | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            registry: Axis strategies. Defaults to the built-in nine.
            ml_provider: Optional score adjustment provider.
            audit_sink: Optional sink for scoring audit events.
            config: Engine configuration. Defaults to the environment.

        Raises:
            AxisNotRegisteredError: If the registry misses an axis.
        """
        self._registry = registry if registry is not None else build_default_registry()
        self._registry.require_complete()
        self._ml_provider = ml_provider
        self._audit_sink = audit_sink
        self._config = config if config is not None else load_scoring_config()

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def calculate_score(
        self,
        quote: Quote,
        enrichment: EnrichmentBundle,
        context: ScoringContext | dict[str, Any],
    ) -> FinalScore:
        """Score one quote.

        Args:
            quote: Quote to score.
            enrichment: Enrichment facts, possibly empty.
            context: ScoringContext or raw mapping.

        Returns:
            FinalScore covering all nine axes.

        Raises:
            ScoringContextError: If the context is malformed. No axis runs.
            ScoringEngineError: If an axis strategy fails unexpectedly.
            AuditSinkError: If the audit sink fails.
        """
        try:
            ctx = build_scoring_context(context, default_region=self._config.default_region)
        except ScoringContextError as exc:
            self._emit_audit(
                "scoring.failed",
                {"quote_id": quote.id, "error_type": "INVALID_CONTEXT", "error": str(exc)},
            )
            raise

        audit_data = {"quote_id": quote.id, "profile": ctx.profile.value}
        self._emit_audit(
            "scoring.started",
            {**audit_data, "project_type": ctx.project_type.value, "region": ctx.region},
        )
        try:
            report = self._score(quote, enrichment, ctx)
        except AuditSinkError:
            raise
        except ScoringEngineError as exc:
            self._emit_audit(
                "scoring.failed", {**audit_data, "error_type": "AXIS_FAILURE", "error": str(exc)}
            )
            raise
        except Exception as exc:
            self._emit_audit(
                "scoring.failed", {**audit_data, "error_type": "INTERNAL_ERROR", "error": str(exc)}
            )
            raise ScoringEngineError(f"Scoring failed: {exc}") from exc

        self._emit_audit(
            "scoring.completed",
            {
                **audit_data,
                "total_score": report.total_score,
                "grade": report.grade.value,
                "confidence_level": report.confidence_level,
                "ml_applied": report.ml_adjustment is not None,
            },
        )
        logger.info(
            "Scored quote %s: %s/%d (%s), confidence %.1f",
            quote.id or "<anonymous>",
            report.total_score,
            GLOBAL_MAX_POINTS,
            report.grade.value,
            report.confidence_level,
        )
        return report

    def _score(
        self, quote: Quote, enrichment: EnrichmentBundle, ctx: ScoringContext
    ) -> FinalScore:
        raw_scores = self._evaluate_axes(quote, enrichment, ctx)

        axis_scores = [
            apply_profile_weight(axis, get_axis_config(axis.axis_id).weight_for(ctx.profile))
            for axis in raw_scores
        ]
        total_weighted = sum(axis.score for axis in axis_scores)
        total_weighted_max = sum(axis.max_points for axis in axis_scores)
        base_score = total_weighted / total_weighted_max * GLOBAL_MAX_POINTS

        final_score = base_score
        ml_adjustment: MLAdjustment | None = None
        prediction = self._predict(quote, enrichment, base_score)
        if prediction is not None:
            final_score, ml_weight = blend_ml(base_score, prediction)
            ml_adjustment = MLAdjustment(
                base_score=base_score,
                predicted_score=prediction.predicted_score,
                ml_weight=ml_weight,
                adjustments=prediction.adjustments,
                feature_importance=prediction.feature_importance,
                confidence=prediction.confidence,
            )

        return FinalScore(
            total_score=round_half_up(final_score),
            grade=grade_for_score(final_score),
            percentage=round(final_score / GLOBAL_MAX_POINTS * 100, 1),
            axis_scores=axis_scores,
            overall_alerts=collect_overall_alerts(axis_scores),
            overall_recommendations=build_overall_recommendations(axis_scores, base_score),
            confidence_level=compute_confidence(
                enrichment, prediction.confidence if prediction is not None else None
            ),
            ml_adjustment=ml_adjustment,
            metadata=ScoringMetadata(
                profile=ctx.profile,
                project_type=ctx.project_type,
                project_amount=ctx.project_amount,
                region=ctx.region,
                version=SCORING_VERSION,
                enriched_data_sources=enriched_data_sources(enrichment),
                evaluated_at=datetime.now(UTC).isoformat(),
            ),
        )

    def _evaluate_axes(
        self, quote: Quote, enrichment: EnrichmentBundle, ctx: ScoringContext
    ) -> list[AxisScore]:
        strategies = self._registry.list_strategies()

        def run(strategy: AxisStrategy) -> AxisScore:
            try:
                result = strategy.evaluate(quote, enrichment, ctx)
            except Exception as exc:
                raise ScoringEngineError(
                    f"Axis '{strategy.axis_id}' evaluation failed: {exc}"
                ) from exc
            if result.axis_id != strategy.axis_id:
                raise ScoringEngineError(
                    f"Axis '{strategy.axis_id}' returned a score for '{result.axis_id}'"
                )
            logger.debug(
                "Axis %s: %.1f/%.0f", result.axis_id, result.score, result.max_points
            )
            return result

        workers = self._config.axis_workers
        if workers <= 1:
            return [run(strategy) for strategy in strategies]
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(run, strategies))

    def _predict(
        self, quote: Quote, enrichment: EnrichmentBundle, base_score: float
    ) -> MLPrediction | None:
        """Ask the provider for a prediction within the configured timeout.

        Returns None when ML is disabled, not wired, or the provider failed.
        Feature extraction runs inside the same guard as the provider call.
        """
        if self._ml_provider is None or not self._config.ml_enabled:
            return None

        timeout = self._config.ml_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            future = executor.submit(
                _request_prediction, self._ml_provider, quote, enrichment, base_score
            )
            return future.result(timeout=timeout)
        except TimeoutError:
            reason = f"timed out after {timeout:.2f}s"
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.warning("ML adjustment skipped for quote %s: %s", quote.id, reason)
        self._emit_audit(
            "scoring.ml.fallback",
            {"quote_id": quote.id, "reason": reason, "base_score": base_score},
        )
        return None

    def _emit_audit(self, event_type: str, data: dict[str, Any]) -> None:
        """Emit an audit event. Fail-closed on sink failure.

        Raises:
            AuditSinkError: If the audit sink fails.
        """
        if self._audit_sink is None:
            return
        event = {
            "event_type": event_type,
            "timestamp": datetime.now(UTC).isoformat(),
            **data,
        }
        try:
            self._audit_sink.emit(event)
        except AuditSinkError:
            raise
        except Exception as exc:
            raise AuditSinkError(f"Audit sink failure for event '{event_type}': {exc}") from exc
