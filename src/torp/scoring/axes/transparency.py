"""Transparency axis (100 points): documentation, client relationship, follow-up."""

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

_REFERENCE_TIERS = (Tier(0.6, 15), Tier(0.3, 9))
_ITEM_REFERENCES = keywords("brand or model references", "marque", "réf", "modèle", "référence")
_DRAWINGS = keywords("plans and drawings", "plan", "schéma", "détail", "coupe", "façade")
_MANUALS = keywords("user documentation", "notice", "mode d'emploi", "manuel", "maintenance")
_ADVICE = keywords("advice to the client", "conseil", "recommandation", "suggestion", "alternative")
_MILESTONES = keywords("project milestones", "jalon", "étape", "point d'étape", "reporting")
_COMMUNICATION = keywords(
    "regular communication", "communication", "information", "suivi régulier"
)
_AFTER_SALES = keywords(
    "after-sales service", "sav", "service après vente", "service après-vente",
    "intervention", "dépannage",
)
_UPKEEP = keywords("maintenance offer", "maintenance", "entretien")


def _quote_clarity(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    items = quote.items
    if not ev.check(bool(items), "line items"):
        return PointAward(9, ev, 50)

    lengths = [len(i.description) for i in items]
    detail_rate = sum(1 for n in lengths if n > 30) / len(items)
    average_length = sum(lengths) / len(items)
    ev.note(f"{detail_rate:.0%} of lines detailed, {average_length:.0f} chars on average")
    if detail_rate >= 0.7 and average_length >= 50:
        points = 15.0
    elif detail_rate >= 0.5 and average_length >= 30:
        points = 10.0
    else:
        points = 5.0

    referenced = sum(
        1
        for i in items
        if _ITEM_REFERENCES.matches(i.description.lower()) or i.unit_price is not None
    )
    points += points_at_least(referenced / len(items), _REFERENCE_TIERS, 4)
    return PointAward(points, ev, 80)


def _technical_documents(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 9.0 if ev.keyword(_DRAWINGS, text) else 4.0
    points += 8 if ev.keyword(_MANUALS, text) else 4
    return PointAward(points, ev, 70)


def _professionalism(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    company = quote.extracted_data.company
    identified = ev.check(
        bool(company.name)
        and bool(company.siret or company.address)
        and bool(company.phone or company.email),
        "complete company letterhead",
    )
    points = 9.0 if identified else 5.0
    points += 9 if ev.keyword(_ADVICE, quote.searchable_text()) else 5
    return PointAward(points, ev, 75)


def _responsiveness(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    company = quote.extracted_data.company
    reachable = ev.check(bool(company.phone) and bool(company.email), "phone and email")
    ev.note("responsiveness not measurable from the quote alone")
    return PointAward(5 + (2 if reachable else 0), ev, 40)


def _support(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 7.0 if ev.keyword(_MILESTONES, text) else 3.0
    points += 6 if ev.keyword(_COMMUNICATION, text) else 3
    return PointAward(points, ev, 60)


def _after_sales(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 3.0 if ev.keyword(_AFTER_SALES, text) else 1.0
    points += 2 if ev.keyword(_UPKEEP, text) else 0
    return PointAward(points, ev, 50)


TRANSPARENCY_AXIS = RuleBasedAxis(
    axis_id=AxisId.TRANSPARENCY,
    sub_criteria=(
        SubCriterion(
            id="documentation",
            label="quote documentation",
            max_points=50,
            control_points=(
                ControlPoint("quote-clarity", 30, _quote_clarity),
                ControlPoint("technical-documents", 20, _technical_documents),
            ),
        ),
        SubCriterion(
            id="client-relationship",
            label="client relationship",
            max_points=30,
            control_points=(
                ControlPoint("professionalism", 20, _professionalism),
                ControlPoint("responsiveness", 10, _responsiveness),
            ),
        ),
        SubCriterion(
            id="project-follow-up",
            label="project follow-up",
            max_points=20,
            control_points=(
                ControlPoint("support", 15, _support),
                ControlPoint("after-sales", 5, _after_sales),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.MINOR,
            threshold=50.0,
            message="Quote lacks detail and transparency",
            impact="Harder to compare offers and verify delivered work",
            recommendation="Ask for itemized lines with brands, quantities and unit prices",
        ),
    ),
)
