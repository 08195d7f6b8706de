"""Innovation axis (50 points): environmental performance and technical innovation."""

from __future__ import annotations

from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote
from torp.scoring.axes.base import (
    AlertRule,
    ControlPoint,
    PointAward,
    RuleBasedAxis,
    SubCriterion,
)
from torp.scoring.context import ScoringContext
from torp.scoring.models import AlertSeverity, AxisId
from torp.scoring.rules import Evidence, Tier, keywords, points_at_least

_BIO_BASED = keywords(
    "bio-based materials", "biosourcé", "bois", "chanvre", "paille", "laine", "fibre végétale"
)
_ENERGY_GAINS = keywords(
    "energy savings",
    "économies énergétiques",
    "économie d'énergie",
    "gain énergétique",
    "performance énergétique",
    "isolation",
    "rénovation énergétique",
)
_WASTE = keywords("waste management", "déchet", "tri", "valorisation", "recyclage")
_LOCAL_SOURCING = keywords("local sourcing", "local", "circuit court", "régional", "proximité")
_ADVANCED_TECH = keywords(
    "advanced technologies",
    "innovation",
    "nouvelle technologie",
    "smart",
    "domotique",
    "connecté",
    "bim",
)
_DIGITAL = keywords("digital tooling", "bim", "maquette 3d", "numérique", "digital")
_TRAINING_TIERS = (Tier(3, 3), Tier(1, 2))


def _low_carbon(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 9.0 if ev.keyword(_BIO_BASED, text) else 4.0
    points += 9 if ev.keyword(_ENERGY_GAINS, text) else 4
    return PointAward(points, ev, 65)


def _eco_practices(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 4.0 if ev.keyword(_WASTE, text) else 2.0
    points += 4 if ev.keyword(_LOCAL_SOURCING, text) else 2
    return PointAward(points, ev, 55)


def _advanced_technologies(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 9.0 if ev.keyword(_ADVANCED_TECH, text) else 5.0
    points += 5 if ev.keyword(_DIGITAL, text) else 2
    return PointAward(points, ev, 60)


def _training(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    count = enrichment.certification_count
    ev.check(count > 0, f"{count} certifications")
    return PointAward(points_at_least(count, _TRAINING_TIERS, 1) + 1, ev, 40)


INNOVATION_AXIS = RuleBasedAxis(
    axis_id=AxisId.INNOVATION,
    sub_criteria=(
        SubCriterion(
            id="environmental-performance",
            label="environmental performance",
            max_points=30,
            control_points=(
                ControlPoint("low-carbon", 20, _low_carbon),
                ControlPoint("eco-practices", 10, _eco_practices),
            ),
        ),
        SubCriterion(
            id="technical-innovation",
            label="technical innovation",
            max_points=20,
            control_points=(
                ControlPoint("advanced-technologies", 15, _advanced_technologies),
                ControlPoint("training", 5, _training),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.MINOR,
            threshold=50.0,
            message="Few sustainable or innovative solutions proposed",
            impact="Missed long-term savings and possible subsidies",
        ),
    ),
)
