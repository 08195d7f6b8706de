"""Tests for ScoringEngine.calculate_score.

Covers the end-to-end renovation scenario, determinism, the ML blend and
its fallbacks, fail-closed context handling and audit events.
"""

from __future__ import annotations

import threading
from typing import Any

import pytest

from tests.fixtures.synthetic import (
    B2C_RENOVATION_CONTEXT,
    B2C_RENOVATION_CONTEXT_WITH_NEED,
    BASELINE_ENRICHMENT,
    FULL_ENRICHMENT,
    SYNTHETIC_QUOTE,
    SYNTHETIC_QUOTE_ID,
)
from torp.audit.sink import AuditSinkError, InMemoryAuditSink
from torp.engine import ScoringEngine, ScoringEngineError, grade_for_score
from torp.ml.features import MLFeatures
from torp.ml.heuristic import HeuristicMLProvider
from torp.ml.provider import MLPrediction, MLProviderError
from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote
from torp.scoring.axis_configs import SCORING_VERSION, get_axis_config
from torp.scoring.config import ScoringConfig
from torp.scoring.context import ScoringContext, ScoringContextError
from torp.scoring.models import (
    ALL_AXES,
    GLOBAL_MAX_POINTS,
    PRIORITY_RANK,
    AlertSeverity,
    AxisId,
    AxisScore,
    Grade,
    Profile,
    RecommendationPriority,
)
from torp.scoring.registry import AxisNotRegisteredError, AxisStrategyRegistry


class _StubAxis:
    """Strategy returning a fixed percentage of the axis budget."""

    def __init__(self, axis_id: AxisId, percentage: float) -> None:
        self._axis_id = axis_id
        self._percentage = percentage
        self.calls = 0

    @property
    def axis_id(self) -> AxisId:
        return self._axis_id

    def evaluate(
        self, quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
    ) -> AxisScore:
        self.calls += 1
        max_points = float(get_axis_config(self._axis_id).max_points)
        return AxisScore(
            axis_id=self._axis_id,
            score=max_points * self._percentage / 100,
            max_points=max_points,
            percentage=self._percentage,
        )


class _FailingAxis(_StubAxis):
    def evaluate(
        self, quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
    ) -> AxisScore:
        raise RuntimeError("boom")


class _StubMLProvider:
    """Provider returning a fixed prediction."""

    def __init__(self, predicted_score: float, confidence: float) -> None:
        self._prediction = MLPrediction(
            predicted_score=predicted_score,
            confidence=confidence,
            adjustments={"quality": 10.0},
            feature_importance={"total_amount": 0.5},
        )
        self.calls: list[tuple[MLFeatures, float]] = []

    def predict(self, features: MLFeatures, base_score: float) -> MLPrediction:
        self.calls.append((features, base_score))
        return self._prediction


class _FailingMLProvider:
    def predict(self, features: MLFeatures, base_score: float) -> MLPrediction:
        raise MLProviderError("model server unavailable")


class _SlowMLProvider:
    def __init__(self) -> None:
        self.release = threading.Event()

    def predict(self, features: MLFeatures, base_score: float) -> MLPrediction:
        self.release.wait(timeout=5.0)
        return MLPrediction(predicted_score=GLOBAL_MAX_POINTS, confidence=1.0)


class _FailingAuditSink:
    def emit(self, event: dict[str, Any]) -> None:
        raise OSError("disk full")


def _make_stub_registry(
    percentage: float, overrides: dict[AxisId, _StubAxis] | None = None
) -> AxisStrategyRegistry:
    registry = AxisStrategyRegistry()
    for axis_id in ALL_AXES:
        stub = (overrides or {}).get(axis_id) or _StubAxis(axis_id, percentage)
        registry.register(stub)
    return registry


def _make_quote() -> Quote:
    return Quote.model_validate(SYNTHETIC_QUOTE)


def _make_engine(**kwargs: Any) -> ScoringEngine:
    kwargs.setdefault("config", ScoringConfig())
    return ScoringEngine(**kwargs)


class TestEndToEndRenovation:
    """B2C bathroom renovation at 12 000 EUR, with and without enrichment."""

    def test_baseline_report(self) -> None:
        engine = _make_engine()
        report = engine.calculate_score(
            _make_quote(),
            EnrichmentBundle.model_validate(BASELINE_ENRICHMENT),
            B2C_RENOVATION_CONTEXT,
        )
        assert tuple(a.axis_id for a in report.axis_scores) == ALL_AXES
        assert 0 <= report.total_score <= GLOBAL_MAX_POINTS
        assert report.total_score == int(report.total_score)
        assert report.confidence_level == 70.0
        assert report.ml_adjustment is None
        assert report.metadata.profile == Profile.B2C
        assert report.metadata.version == SCORING_VERSION
        assert report.metadata.region == "ILE_DE_FRANCE"
        assert report.metadata.enriched_data_sources == ["Sirene"]

    def test_enriched_report(self) -> None:
        engine = _make_engine()
        report = engine.calculate_score(
            _make_quote(),
            EnrichmentBundle.model_validate(FULL_ENRICHMENT),
            B2C_RENOVATION_CONTEXT,
        )
        assert report.confidence_level >= 95.0
        assert report.metadata.enriched_data_sources == [
            "Sirene",
            "Infogreffe",
            "Price references",
            "Regional data",
        ]

    def test_enrichment_raises_confidence_only_where_used(self) -> None:
        engine = _make_engine()
        quote = _make_quote()
        baseline = engine.calculate_score(
            quote, EnrichmentBundle.model_validate(BASELINE_ENRICHMENT), B2C_RENOVATION_CONTEXT
        )
        enriched = engine.calculate_score(
            quote, EnrichmentBundle.model_validate(FULL_ENRICHMENT), B2C_RENOVATION_CONTEXT
        )
        assert baseline.confidence_level < enriched.confidence_level

        unchanged = (
            AxisId.FEASIBILITY,
            AxisId.TRANSPARENCY,
            AxisId.GUARANTEES,
            AxisId.INNOVATION,
            AxisId.COHERENCE,
        )
        base_axes = {a.axis_id: a for a in baseline.axis_scores}
        rich_axes = {a.axis_id: a for a in enriched.axis_scores}
        for axis_id in unchanged:
            assert base_axes[axis_id].model_dump() == rich_axes[axis_id].model_dump()

    def test_weighted_axis_budgets(self) -> None:
        report = _make_engine().calculate_score(
            _make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT
        )
        for axis in report.axis_scores:
            config = get_axis_config(axis.axis_id)
            weight = config.weight_for(Profile.B2C)
            assert axis.max_points == pytest.approx(config.max_points * weight)
            assert axis.score <= axis.max_points + 1e-9

    def test_coherence_absent_without_stated_need(self) -> None:
        report = _make_engine().calculate_score(
            _make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT
        )
        coherence = report.axis_scores[-1]
        assert coherence.axis_id == AxisId.COHERENCE
        assert coherence.score == 0.0
        assert not any(a.axis_id == AxisId.COHERENCE for a in report.overall_alerts)

    def test_stated_need_scores_coherence(self) -> None:
        report = _make_engine().calculate_score(
            _make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT_WITH_NEED
        )
        assert report.axis_scores[-1].score > 0

    def test_overall_alerts_exclude_minor(self) -> None:
        report = _make_engine().calculate_score(Quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        assert all(a.severity != AlertSeverity.MINOR for a in report.overall_alerts)

    def test_recommendations_sorted_by_priority(self) -> None:
        report = _make_engine().calculate_score(Quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        ranks = [PRIORITY_RANK[r.priority] for r in report.overall_recommendations]
        assert ranks == sorted(ranks)


class TestDeterminism:
    """Identical inputs give identical reports apart from the timestamp."""

    def test_repeated_calls_identical(self) -> None:
        engine = _make_engine()
        quote = _make_quote()
        enrichment = EnrichmentBundle.model_validate(FULL_ENRICHMENT)
        first = engine.calculate_score(quote, enrichment, B2C_RENOVATION_CONTEXT_WITH_NEED)
        second = engine.calculate_score(quote, enrichment, B2C_RENOVATION_CONTEXT_WITH_NEED)
        assert first.to_json_dict(include_timestamp=False) == second.to_json_dict(
            include_timestamp=False
        )
        assert "evaluated_at" not in first.to_json_dict(include_timestamp=False)["metadata"]
        assert "evaluated_at" in first.to_json_dict()["metadata"]

    def test_parallel_axes_match_sequential(self) -> None:
        quote = _make_quote()
        enrichment = EnrichmentBundle.model_validate(FULL_ENRICHMENT)
        sequential = _make_engine(config=ScoringConfig(axis_workers=1)).calculate_score(
            quote, enrichment, B2C_RENOVATION_CONTEXT_WITH_NEED
        )
        parallel = _make_engine(config=ScoringConfig(axis_workers=4)).calculate_score(
            quote, enrichment, B2C_RENOVATION_CONTEXT_WITH_NEED
        )
        assert sequential.to_json_dict(include_timestamp=False) == parallel.to_json_dict(
            include_timestamp=False
        )


class TestNormalization:
    """Stub axes at a uniform percentage give that share of 1350."""

    def test_uniform_half_scores_675(self) -> None:
        engine = _make_engine(registry=_make_stub_registry(50.0))
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        assert report.total_score == 675
        assert report.grade == Grade.D
        assert report.percentage == 50.0

    @pytest.mark.parametrize("profile", ["B2C", "B2B"])
    @pytest.mark.parametrize("percentage,expected", [(20.0, 270), (40.0, 540), (80.0, 1080)])
    def test_uniform_percentage_of_1350(
        self, profile: str, percentage: float, expected: int
    ) -> None:
        engine = _make_engine(registry=_make_stub_registry(percentage))
        report = engine.calculate_score(
            _make_quote(), EnrichmentBundle(), {**B2C_RENOVATION_CONTEXT, "profile": profile}
        )
        assert report.total_score == expected
        assert report.percentage == pytest.approx(percentage, abs=0.1)

    def test_uniform_high_scores_grade_a_plus(self) -> None:
        engine = _make_engine(registry=_make_stub_registry(95.0))
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        assert report.total_score == pytest.approx(1282.0, abs=1.0)
        assert report.grade == Grade.A_PLUS
        assert report.grade == grade_for_score(report.total_score)

    def test_profile_changes_weights_not_uniform_result(self) -> None:
        engine = _make_engine(registry=_make_stub_registry(50.0))
        b2b = engine.calculate_score(
            _make_quote(), EnrichmentBundle(), {**B2C_RENOVATION_CONTEXT, "profile": "B2B"}
        )
        assert b2b.total_score == 675
        assert b2b.metadata.profile == Profile.B2B

    def test_global_recommendations_at_675(self) -> None:
        engine = _make_engine(registry=_make_stub_registry(50.0))
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        recs = report.overall_recommendations
        assert [r.category for r in recs] == ["compliance", "price", "general"]
        assert recs[0].priority == RecommendationPriority.HIGH
        assert recs[2].priority == RecommendationPriority.MEDIUM


class TestMLBlend:
    """ML predictions are blended with a weight of at most 0.3."""

    def test_full_confidence(self) -> None:
        provider = _StubMLProvider(predicted_score=1350.0, confidence=1.0)
        engine = _make_engine(registry=_make_stub_registry(50.0), ml_provider=provider)
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)

        assert report.total_score == pytest.approx(877.5, abs=0.5)
        assert report.grade == Grade.C
        assert report.ml_adjustment is not None
        assert report.ml_adjustment.ml_weight == pytest.approx(0.3)
        assert report.ml_adjustment.base_score == pytest.approx(675.0)
        assert report.ml_adjustment.predicted_score == 1350.0
        assert report.ml_adjustment.adjustments == {"quality": 10.0}
        assert report.confidence_level == pytest.approx(79.0)

    def test_zero_confidence_has_no_effect(self) -> None:
        provider = _StubMLProvider(predicted_score=1350.0, confidence=0.0)
        engine = _make_engine(registry=_make_stub_registry(50.0), ml_provider=provider)
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)

        assert report.total_score == 675
        assert report.ml_adjustment is not None
        assert report.ml_adjustment.ml_weight == 0.0

    def test_global_recommendation_uses_base_score(self) -> None:
        provider = _StubMLProvider(predicted_score=1350.0, confidence=1.0)
        engine = _make_engine(registry=_make_stub_registry(50.0), ml_provider=provider)
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        general = [r for r in report.overall_recommendations if r.category == "general"]
        assert len(general) == 1
        assert general[0].priority == RecommendationPriority.MEDIUM

    def test_provider_receives_features_and_base_score(self) -> None:
        provider = _StubMLProvider(predicted_score=700.0, confidence=0.5)
        engine = _make_engine(registry=_make_stub_registry(50.0), ml_provider=provider)
        engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        features, base_score = provider.calls[0]
        assert base_score == pytest.approx(675.0)
        assert features.total_amount == 12000.0
        assert features.items_count == 6

    def test_disabled_by_config(self) -> None:
        provider = _StubMLProvider(predicted_score=1350.0, confidence=1.0)
        engine = _make_engine(
            registry=_make_stub_registry(50.0),
            ml_provider=provider,
            config=ScoringConfig(ml_enabled=False),
        )
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        assert report.ml_adjustment is None
        assert provider.calls == []

    def test_heuristic_provider_end_to_end(self) -> None:
        engine = _make_engine(ml_provider=HeuristicMLProvider())
        report = engine.calculate_score(
            _make_quote(), EnrichmentBundle.model_validate(FULL_ENRICHMENT), B2C_RENOVATION_CONTEXT
        )
        assert report.ml_adjustment is not None
        assert 0.0 < report.ml_adjustment.ml_weight <= 0.3
        assert set(report.ml_adjustment.adjustments) == {"price", "quality", "risk"}


class TestMLFallback:
    """Provider failures never fail scoring."""

    def test_provider_error_falls_back_to_base(self, caplog: pytest.LogCaptureFixture) -> None:
        sink = InMemoryAuditSink()
        engine = _make_engine(
            registry=_make_stub_registry(50.0),
            ml_provider=_FailingMLProvider(),
            audit_sink=sink,
        )
        with caplog.at_level("WARNING", logger="torp.engine"):
            report = engine.calculate_score(
                _make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT
            )

        assert report.total_score == 675
        assert report.ml_adjustment is None
        assert report.confidence_level == 70.0
        assert "ML adjustment skipped" in caplog.text
        assert sink.event_types() == ["scoring.started", "scoring.ml.fallback", "scoring.completed"]
        assert "model server unavailable" in sink.events[1]["reason"]

    def test_provider_timeout_falls_back_to_base(self) -> None:
        provider = _SlowMLProvider()
        engine = _make_engine(
            registry=_make_stub_registry(50.0),
            ml_provider=provider,
            config=ScoringConfig(ml_timeout_seconds=0.05),
        )
        try:
            report = engine.calculate_score(
                _make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT
            )
        finally:
            provider.release.set()
        assert report.total_score == 675
        assert report.ml_adjustment is None

    def test_feature_extraction_error_falls_back_to_base(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def _broken_extract(quote: Quote, enrichment: EnrichmentBundle) -> MLFeatures:
            raise ValueError("garbage extracted total")

        monkeypatch.setattr("torp.engine.extract_features", _broken_extract)
        sink = InMemoryAuditSink()
        engine = _make_engine(
            registry=_make_stub_registry(50.0),
            ml_provider=HeuristicMLProvider(),
            audit_sink=sink,
        )
        report = engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)

        assert report.total_score == 675
        assert report.ml_adjustment is None
        assert sink.event_types() == ["scoring.started", "scoring.ml.fallback", "scoring.completed"]
        assert "garbage extracted total" in sink.events[1]["reason"]

    def test_negative_extracted_total_still_scores(self) -> None:
        payload = {
            **SYNTHETIC_QUOTE,
            "totalAmount": 0,
            "extractedData": {
                **SYNTHETIC_QUOTE["extractedData"],
                "totals": {"total": -500.0},
            },
        }
        engine = _make_engine(ml_provider=HeuristicMLProvider())
        report = engine.calculate_score(
            Quote.model_validate(payload),
            EnrichmentBundle.model_validate(FULL_ENRICHMENT),
            B2C_RENOVATION_CONTEXT,
        )

        assert len(report.axis_scores) == 9
        assert report.ml_adjustment is not None


class TestFailClosed:
    """Malformed contexts and broken axes."""

    def test_malformed_context_rejected_before_any_axis(self) -> None:
        stub = _StubAxis(AxisId.COMPLIANCE, 50.0)
        engine = _make_engine(registry=_make_stub_registry(50.0, {AxisId.COMPLIANCE: stub}))
        with pytest.raises(ScoringContextError):
            engine.calculate_score(
                _make_quote(), EnrichmentBundle(), {**B2C_RENOVATION_CONTEXT, "profile": "B2G"}
            )
        assert stub.calls == 0

    def test_missing_project_type_rejected(self) -> None:
        with pytest.raises(ScoringContextError):
            _make_engine().calculate_score(
                _make_quote(), EnrichmentBundle(), {"profile": "B2C", "projectAmount": "low"}
            )

    def test_axis_exception_wrapped(self) -> None:
        failing = _FailingAxis(AxisId.PRICE, 0.0)
        engine = _make_engine(registry=_make_stub_registry(50.0, {AxisId.PRICE: failing}))
        with pytest.raises(ScoringEngineError, match="price") as exc_info:
            engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_incomplete_registry_rejected_at_construction(self) -> None:
        registry = AxisStrategyRegistry()
        registry.register(_StubAxis(AxisId.COMPLIANCE, 50.0))
        with pytest.raises(AxisNotRegisteredError, match="price"):
            ScoringEngine(registry=registry, config=ScoringConfig())


class TestAuditEvents:
    """Scoring emits an append-only audit trail."""

    def test_started_and_completed(self) -> None:
        sink = InMemoryAuditSink()
        engine = _make_engine(registry=_make_stub_registry(50.0), audit_sink=sink)
        engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)

        assert sink.event_types() == ["scoring.started", "scoring.completed"]
        started, completed = sink.events
        assert started["quote_id"] == SYNTHETIC_QUOTE_ID
        assert started["profile"] == "B2C"
        assert completed["grade"] == "D"
        assert completed["total_score"] == 675
        assert completed["ml_applied"] is False
        assert "timestamp" in completed

    def test_failed_event_for_invalid_context(self) -> None:
        sink = InMemoryAuditSink()
        engine = _make_engine(registry=_make_stub_registry(50.0), audit_sink=sink)
        with pytest.raises(ScoringContextError):
            engine.calculate_score(_make_quote(), EnrichmentBundle(), {"profile": "B2C"})
        assert sink.event_types() == ["scoring.failed"]
        assert sink.events[0]["error_type"] == "INVALID_CONTEXT"

    def test_failed_event_for_axis_failure(self) -> None:
        sink = InMemoryAuditSink()
        failing = _FailingAxis(AxisId.SCHEDULE, 0.0)
        engine = _make_engine(
            registry=_make_stub_registry(50.0, {AxisId.SCHEDULE: failing}), audit_sink=sink
        )
        with pytest.raises(ScoringEngineError):
            engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
        assert sink.event_types() == ["scoring.started", "scoring.failed"]
        assert sink.events[1]["error_type"] == "AXIS_FAILURE"

    def test_sink_failure_is_fatal(self) -> None:
        engine = _make_engine(
            registry=_make_stub_registry(50.0), audit_sink=_FailingAuditSink()
        )
        with pytest.raises(AuditSinkError, match="scoring.started"):
            engine.calculate_score(_make_quote(), EnrichmentBundle(), B2C_RENOVATION_CONTEXT)
