"""Tests for the orchestrator helpers: grading, ML blend, confidence, recommendations."""

from __future__ import annotations

import pytest

from torp.engine import (
    apply_profile_weight,
    blend_ml,
    build_overall_recommendations,
    collect_overall_alerts,
    compute_confidence,
    enriched_data_sources,
    grade_for_score,
)
from torp.ml.provider import MLPrediction
from torp.models.enrichment import EnrichmentBundle
from torp.scoring.axis_configs import get_axis_config
from torp.scoring.models import (
    ALL_AXES,
    Alert,
    AlertSeverity,
    AxisId,
    AxisScore,
    Grade,
    Profile,
    Recommendation,
    RecommendationPriority,
)


def _make_axis(
    axis_id: AxisId,
    percentage: float,
    *,
    profile: Profile = Profile.B2C,
    alerts: list[Alert] | None = None,
    recommendations: list[Recommendation] | None = None,
) -> AxisScore:
    """Profile-weighted axis score at the given percentage."""
    config = get_axis_config(axis_id)
    weighted_max = config.max_points * config.weight_for(profile)
    return AxisScore(
        axis_id=axis_id,
        score=weighted_max * percentage / 100,
        max_points=weighted_max,
        percentage=percentage,
        alerts=alerts or [],
        recommendations=recommendations or [],
    )


def _make_axes(percentages: dict[AxisId, float], default: float = 80.0) -> list[AxisScore]:
    return [_make_axis(a, percentages.get(a, default)) for a in ALL_AXES]


def _make_enrichment(*facts: str) -> EnrichmentBundle:
    company: dict[str, object] = {}
    bundle: dict[str, object] = {"company": company}
    if "financial_data" in facts:
        company["financialData"] = {"ca": [100000.0]}
    if "reputation" in facts:
        company["reputation"] = {"averageRating": 4.2}
    if "legal_status_details" in facts:
        company["legalStatusDetails"] = {"hasCollectiveProcedure": False}
    if "price_references" in facts:
        bundle["priceReferences"] = [{"label": "Peinture", "prices": {"average": 25.0}}]
    if "regional_data" in facts:
        bundle["regionalData"] = {"region": "ILE_DE_FRANCE"}
    if "compliance_data" in facts:
        bundle["complianceData"] = {"applicableRules": ["RE2020"]}
    return EnrichmentBundle.model_validate(bundle)


class TestGradeBoundaries:
    """Grades switch exactly at 1215/1080/945/810/675."""

    @pytest.mark.parametrize(
        "threshold,grade,below",
        [
            (1215, Grade.A_PLUS, Grade.A),
            (1080, Grade.A, Grade.B),
            (945, Grade.B, Grade.C),
            (810, Grade.C, Grade.D),
            (675, Grade.D, Grade.E),
        ],
    )
    def test_boundary(self, threshold: int, grade: Grade, below: Grade) -> None:
        assert grade_for_score(threshold) == grade
        assert grade_for_score(threshold - 1) == below

    def test_unrounded_score_just_below_boundary(self) -> None:
        assert grade_for_score(1214.6) == Grade.A

    def test_extremes(self) -> None:
        assert grade_for_score(1350) == Grade.A_PLUS
        assert grade_for_score(0) == Grade.E


class TestBlendML:
    """The ML weight is the prediction confidence scaled to at most 0.3."""

    def test_zero_confidence_has_no_effect(self) -> None:
        final, weight = blend_ml(700.0, MLPrediction(predicted_score=1300.0, confidence=0.0))
        assert weight == 0.0
        assert final == pytest.approx(700.0)

    def test_full_confidence_caps_weight(self) -> None:
        final, weight = blend_ml(700.0, MLPrediction(predicted_score=1300.0, confidence=1.0))
        assert weight == pytest.approx(0.3)
        assert final == pytest.approx(700.0 * 0.7 + 1300.0 * 0.3)

    def test_partial_confidence(self) -> None:
        final, weight = blend_ml(1000.0, MLPrediction(predicted_score=0.0, confidence=0.5))
        assert weight == pytest.approx(0.15)
        assert final == pytest.approx(850.0)


class TestConfidence:
    """Confidence grows with each enrichment fact."""

    def test_baseline(self) -> None:
        assert compute_confidence(EnrichmentBundle()) == 70.0

    @pytest.mark.parametrize(
        "fact,expected",
        [
            ("financial_data", 80.0),
            ("reputation", 75.0),
            ("legal_status_details", 75.0),
            ("price_references", 75.0),
            ("regional_data", 73.0),
            ("compliance_data", 72.0),
        ],
    )
    def test_single_fact_bonus(self, fact: str, expected: float) -> None:
        assert compute_confidence(_make_enrichment(fact)) == expected

    def test_all_facts_capped_at_100(self) -> None:
        enrichment = _make_enrichment(
            "financial_data",
            "reputation",
            "legal_status_details",
            "price_references",
            "regional_data",
            "compliance_data",
        )
        assert compute_confidence(enrichment) == 100.0

    def test_monotonic_in_facts(self) -> None:
        facts = (
            "financial_data",
            "reputation",
            "legal_status_details",
            "price_references",
            "regional_data",
            "compliance_data",
        )
        previous = compute_confidence(EnrichmentBundle())
        for i in range(1, len(facts) + 1):
            current = compute_confidence(_make_enrichment(*facts[:i]))
            assert current >= previous
            previous = current

    def test_ml_confidence_blend(self) -> None:
        assert compute_confidence(EnrichmentBundle(), ml_confidence=1.0) == pytest.approx(79.0)
        assert compute_confidence(EnrichmentBundle(), ml_confidence=0.0) == pytest.approx(49.0)


class TestProfileWeighting:
    """Weighted axes carry score * w and budget * w."""

    def test_apply_profile_weight(self) -> None:
        raw = AxisScore(axis_id=AxisId.PRICE, score=200.0, max_points=250.0, percentage=80.0)
        weighted = apply_profile_weight(raw, 0.18)
        assert weighted.score == pytest.approx(36.0)
        assert weighted.max_points == pytest.approx(45.0)
        assert weighted.percentage == 80.0


class TestOverallAlerts:
    """Only critical and major alerts are promoted."""

    def test_minor_alerts_filtered(self) -> None:
        alerts = [
            Alert(severity=severity, axis_id=AxisId.PRICE, message="m", impact="i")
            for severity in AlertSeverity
        ]
        axes = [_make_axis(AxisId.PRICE, 50.0, alerts=alerts)]
        promoted = collect_overall_alerts(axes)
        assert [a.severity for a in promoted] == [AlertSeverity.CRITICAL, AlertSeverity.MAJOR]


class TestOverallRecommendations:
    """Weak-axis and global recommendations, highest priority first."""

    def test_two_weakest_axes_under_60(self) -> None:
        axes = _make_axes(
            {
                AxisId.PRICE: 40.0,
                AxisId.QUALITY: 55.0,
                AxisId.SCHEDULE: 30.0,
                AxisId.COHERENCE: 59.0,
            }
        )
        recs = build_overall_recommendations(axes, base_score=1000.0)
        assert [r.category for r in recs] == ["schedule", "price"]
        assert all(r.priority == RecommendationPriority.HIGH for r in recs)

    def test_weak_axis_upside(self) -> None:
        axes = _make_axes({AxisId.PRICE: 50.0})
        recs = build_overall_recommendations(axes, base_score=1000.0)
        assert len(recs) == 1
        assert recs[0].potential_impact == "+9 points possible"
        assert recs[0].suggestion == "Improve Price & market position (50% currently)"

    def test_seek_alternatives_below_600(self) -> None:
        recs = build_overall_recommendations(_make_axes({}), base_score=599.9)
        general = [r for r in recs if r.category == "general"]
        assert len(general) == 1
        assert general[0].priority == RecommendationPriority.HIGH

    def test_additional_verification_between_600_and_840(self) -> None:
        recs = build_overall_recommendations(_make_axes({}), base_score=600.0)
        general = [r for r in recs if r.category == "general"]
        assert len(general) == 1
        assert general[0].priority == RecommendationPriority.MEDIUM

    def test_no_global_recommendation_from_840(self) -> None:
        recs = build_overall_recommendations(_make_axes({}), base_score=840.0)
        assert recs == []

    def test_sorted_by_priority_stable(self) -> None:
        low = Recommendation(
            priority=RecommendationPriority.LOW,
            category="coherence",
            suggestion="low",
            potential_impact="+1",
        )
        medium = Recommendation(
            priority=RecommendationPriority.MEDIUM,
            category="price",
            suggestion="medium",
            potential_impact="+2",
        )
        axes = [
            _make_axis(a, 80.0, recommendations=[low, medium] if a == AxisId.PRICE else [])
            for a in ALL_AXES
        ]
        recs = build_overall_recommendations(axes, base_score=700.0)
        assert [r.suggestion for r in recs] == [
            "medium",
            "Perform additional verification before signing",
            "low",
        ]


class TestEnrichedDataSources:
    """Metadata lists the enrichment sources present."""

    def test_no_sources(self) -> None:
        assert enriched_data_sources(EnrichmentBundle()) == []

    def test_all_sources(self) -> None:
        enrichment = EnrichmentBundle.model_validate(
            {
                "company": {"siret": "73282932000074", "financialData": {"ca": [1.0]}},
                "priceReferences": [{"label": "x"}],
                "regionalData": {"region": "ILE_DE_FRANCE"},
                "complianceData": {},
                "weatherData": {"averageWeatherDays": 12},
            }
        )
        assert enriched_data_sources(enrichment) == [
            "Sirene",
            "Infogreffe",
            "Price references",
            "Regional data",
            "Compliance",
            "Weather",
        ]
