"""Feasibility axis (150 points): technical fit, execution realism, risk management."""

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
from torp.scoring.models import AlertSeverity, AxisId, ProjectType
from torp.scoring.rules import Evidence, Tier, keywords, points_below

_DIAGNOSTIC = keywords(
    "site diagnostic", "diagnostic", "état des lieux", "visite", "expertise", "relevé"
)
_DIMENSIONS = keywords("dimensions", "surface", "m²", "m2", "mètre", "volume")
_CALCULATIONS = keywords("sizing calculations", "calcul", "dimensionnement", "charge")
_INNOVATION = keywords(
    "innovative solutions", "innovation", "nouvelle technologie", "smart", "domotique"
)
_SUPPLY = keywords(
    "supply planning", "disponibilité", "stock", "approvisionnement", "délai"
)
_SITE_ACCESS = keywords("site logistics", "accès", "logistique", "chantier", "contrainte")
_COORDINATION = keywords(
    "trade coordination", "coordination", "corps d'état", "intervenant", "phasage"
)
_RISKS = keywords("risk identification", "risque", "aléa", "précaution", "mesure")
_FALLBACK = keywords("fallback plan", "plan b", "alternative", "solution de secours")

_ESTIMATED_DAYS: dict[ProjectType, int] = {
    ProjectType.RENOVATION: 45,
    ProjectType.CONSTRUCTION: 180,
}
_DEFAULT_ESTIMATED_DAYS = 30
_PLANNING_TIERS = (Tier(0.2, 15), Tier(0.5, 10))


def _technical_fit(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 18.0 if ev.keyword(_DIAGNOSTIC, text) else 8.0
    dimensions = ev.check(
        _DIMENSIONS.matches(text) or quote.extracted_data.project.surface is not None,
        _DIMENSIONS.label,
    )
    calculations = ev.keyword(_CALCULATIONS, text)
    if dimensions and calculations:
        points += 18
    elif dimensions or calculations:
        points += 12
    else:
        points += 6
    return PointAward(points, ev, 70)


def _controlled_innovation(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 12.0 if ev.keyword(_INNOVATION, quote.searchable_text()) else 8.0
    portfolio = enrichment.company_or_empty.portfolio
    experienced = portfolio is not None and (portfolio.similar_projects or 0) >= 5
    points += 12 if ev.check(experienced, "five or more similar projects") else 6
    return PointAward(points, ev, 60)


def _planning(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    dates = quote.extracted_data.dates
    if ev.check(
        dates.start_date is not None and dates.end_date is not None, "start and end dates"
    ):
        duration = (dates.end_date - dates.start_date).days
        estimated = _ESTIMATED_DAYS.get(context.project_type, _DEFAULT_ESTIMATED_DAYS)
        deviation = abs(duration - estimated) / estimated
        ev.note(f"{duration} days planned against {estimated} expected")
        points = points_below(deviation, _PLANNING_TIERS, 5)
    else:
        points = 8.0
    points += 12 if ev.keyword(_SUPPLY, quote.searchable_text()) else 7
    return PointAward(points, ev, 75 if dates.start_date else 50)


def _site_constraints(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 8.0 if ev.keyword(_SITE_ACCESS, text) else 5.0
    points += 8 if ev.keyword(_COORDINATION, text) else 4
    return PointAward(points, ev, 65)


def _risk_identification(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 8.0 if ev.keyword(_RISKS, quote.searchable_text()) else 4.0
    points += 8 if ev.check(enrichment.weather_data is not None, "weather statistics") else 5
    return PointAward(points, ev, 60)


def _preventive_measures(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 4.0 if ev.keyword(_FALLBACK, quote.searchable_text()) else 2.0
    insured = quote.extracted_data.legal_mentions.has_insurance
    points += 4 if ev.check(insured, "insurance mentioned on quote") else 1
    return PointAward(points, ev, 55)


FEASIBILITY_AXIS = RuleBasedAxis(
    axis_id=AxisId.FEASIBILITY,
    sub_criteria=(
        SubCriterion(
            id="relevance",
            label="technical relevance",
            max_points=70,
            control_points=(
                ControlPoint("technical-fit", 40, _technical_fit),
                ControlPoint("controlled-innovation", 30, _controlled_innovation),
            ),
        ),
        SubCriterion(
            id="execution-realism",
            label="execution planning",
            max_points=50,
            control_points=(
                ControlPoint("planning", 30, _planning),
                ControlPoint("site-constraints", 20, _site_constraints),
            ),
        ),
        SubCriterion(
            id="risk-management",
            label="risk management",
            max_points=30,
            control_points=(
                ControlPoint("risk-identification", 20, _risk_identification),
                ControlPoint("preventive-measures", 10, _preventive_measures),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.MAJOR,
            threshold=50.0,
            message="Technical feasibility weakly documented",
            impact="Higher risk of overruns during execution",
            recommendation="Request a site visit report and a detailed execution plan",
        ),
    ),
)
