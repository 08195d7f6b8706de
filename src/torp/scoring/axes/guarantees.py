"""Guarantees axis (80 points): legal coverage and commercial extensions."""

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
from torp.scoring.rules import Evidence, keywords

_DECENNALE = keywords("ten-year liability", "décennale", "decennale")
_COMPLETION = keywords("completion guarantee", "parfait achèvement", "réception")
_BIENNIAL = keywords("two-year guarantee", "biennal", "biennale", "2 ans", "deux ans")
_MANUFACTURER = keywords(
    "manufacturer warranty", "garantie fabricant", "garantie constructeur", "warranty"
)
_EXTENDED = keywords("extended warranty", "garantie étendue", "extension garantie")
_ADVANCE = keywords("advance payment", "acompte", "avance")
_ADVANCE_COVER = keywords(
    "advance payment guarantee", "garantie financière", "caution", "soumission"
)
_BUILDING_DAMAGE = keywords(
    "building damage insurance", "dommages ouvrage", "dommage ouvrage", "do"
)


def _mandatory_guarantees(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    insured = quote.extracted_data.legal_mentions.has_insurance
    points = 0.0
    if ev.check(insured or _DECENNALE.matches(text), _DECENNALE.label):
        points += 15
        if quote.total > 0:
            points += 2
    points += 10 if ev.keyword(_COMPLETION, text) else 5
    points += 10 if ev.keyword(_BIENNIAL, text) else 4
    return PointAward(points, ev, 75)


def _professional_insurance(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    insurances = enrichment.company_or_empty.insurances
    insured = quote.extracted_data.legal_mentions.has_insurance or (
        insurances is not None and insurances.has_rc
    )
    if ev.check(insured, "professional insurance"):
        points = 9.0
        ceiling = insurances.decennale_amount if insurances else None
        if ev.check(
            ceiling is not None and ceiling >= quote.total, "cover ceiling above quote total"
        ):
            points += 1
    else:
        points = 3.0
    return PointAward(points + 3, ev, 60)


def _extended_warranties(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 9.0 if ev.keyword(_MANUFACTURER, text) else 4.0
    extended = _EXTENDED.matches(text) or ("plus de" in text and "ans" in text)
    points += 9 if ev.check(extended, _EXTENDED.label) else 4
    return PointAward(points, ev, 65)


def _financial_protection(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    if ev.keyword(_ADVANCE, text):
        points = 5.0 if ev.keyword(_ADVANCE_COVER, text) else 2.0
    else:
        points = 3.0
    points += 5 if ev.keyword(_BUILDING_DAMAGE, text) else 2
    return PointAward(points, ev, 70)


GUARANTEES_AXIS = RuleBasedAxis(
    axis_id=AxisId.GUARANTEES,
    sub_criteria=(
        SubCriterion(
            id="legal-coverage",
            label="legal guarantees",
            max_points=50,
            control_points=(
                ControlPoint("mandatory-guarantees", 35, _mandatory_guarantees),
                ControlPoint("professional-insurance", 15, _professional_insurance),
            ),
        ),
        SubCriterion(
            id="commercial-extensions",
            label="extended guarantees",
            max_points=30,
            control_points=(
                ControlPoint("extended-warranties", 20, _extended_warranties),
                ControlPoint("financial-protection", 10, _financial_protection),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.MAJOR,
            threshold=60.0,
            message="Legal guarantees incomplete",
            impact="Client exposed in case of defects after completion",
            recommendation="Request the ten-year liability certificate before signing",
            sub_criteria_id="legal-coverage",
        ),
    ),
)
