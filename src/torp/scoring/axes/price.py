"""Price axis (250 points).

- positioning (120): regional benchmark, labor/material ratio, anomalies
- value (80): quality-price ratio, negotiation room
- financial-terms (50): payment schedule, tax incentives
"""

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
from torp.scoring.rules import Evidence, Tier, keywords, points_below, round_half_up

_DEVIATION_TIERS = (
    Tier(-0.2, 30),
    Tier(-0.1, 25),
    Tier(0.1, 20),
    Tier(0.3, 10),
)
_REFERENCE_TOLERANCE = 0.3
_REFERENCE_SAMPLE = 5
_TARGET_MATERIAL_RATIO = 0.45
_TOTALS_TOLERANCE = 0.01
_REDUCED_VAT_RATES = (5.5, 10.0)
_STANDARD_VAT_RATE = 20.0

_LABOR = keywords("labor lines", "main d'œuvre", "main d'oeuvre", "main-d'œuvre", "mo", "pose")
_MATERIAL = keywords("material lines", "matériau", "materiau", "fourniture")
_QUALITY_CLAIMS = keywords(
    "quality commitments", "haut de gamme", "premium", "qualité", "garantie"
)
_SAVINGS = keywords(
    "return on investment arguments",
    "économies",
    "roi",
    "retour sur investissement",
    "performance énergétique",
)
_DURABILITY = keywords(
    "durability arguments", "durable", "durée de vie", "longévité", "résistant"
)
_OPTIONS = keywords("optional lines", "option", "supplément", "en plus")
_PAYMENT_SCHEDULE = keywords("payment schedule", "acompte", "échéancier", "tranche", "paiement")
_PAYMENT_TERMS = keywords("payment terms", "délai", "jours", "escompte", "pénalité")
_SUBSIDIES = keywords(
    "subsidy schemes", "anah", "maprime", "cee", "certificat", "aide"
)


def _average_price_sqm(enrichment: EnrichmentBundle) -> float | None:
    regional = enrichment.regional_data
    if regional is None or not regional.average_price_sqm or regional.average_price_sqm <= 0:
        return None
    return regional.average_price_sqm


def _price_per_sqm(quote: Quote, average: float) -> float:
    """Quote price per square meter, 0 when the quote carries no positive total.

    Surface defaults to total / average.
    """
    total = quote.total
    if total <= 0:
        return 0.0
    surface = quote.extracted_data.project.surface or total / average
    if surface <= 0:
        return 0.0
    return total / surface


def _benchmarking(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 0.0
    average = _average_price_sqm(enrichment)
    if ev.check(average is not None, "regional price per m2"):
        per_sqm = _price_per_sqm(quote, average)
        if ev.check(per_sqm > 0, "quote price per m2"):
            deviation = (per_sqm - average) / average
            points += points_below(deviation, _DEVIATION_TIERS, 5)
            ev.note(f"deviation from regional average {deviation:+.0%}")
    else:
        points += 15

    references = [
        r.prices.average for r in enrichment.price_references if r.prices.average
    ]
    sample = quote.items[:_REFERENCE_SAMPLE]
    if ev.check(bool(references) and bool(sample), "line prices with market references"):
        matched = sum(
            1
            for item in sample
            if item.unit_price
            and item.unit_price > 0
            and any(abs(item.unit_price - ref) / ref < _REFERENCE_TOLERANCE for ref in references)
        )
        points += round_half_up(20 * matched / len(sample))
    else:
        points += 10

    region = enrichment.regional_data.region if enrichment.regional_data else None
    points += 8 if ev.check(bool(region), "regional market data") else 4
    return PointAward(points, ev, 80 if enrichment.regional_data else 50)


def _sector_ratios(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    labor = material = 0.0
    for item in quote.items:
        description = item.description.lower()
        amount = item.amount
        if _LABOR.matches(description):
            labor += amount
        elif _MATERIAL.matches(description):
            material += amount
        else:
            labor += amount / 2
            material += amount / 2
    total = labor + material
    ratio = material / total if total > 0 else 0.5
    ev.check(bool(quote.items), "priced line items")
    ev.note(f"material share {ratio:.0%}")
    points = max(0.0, 20 - abs(ratio - _TARGET_MATERIAL_RATIO) * 40) + 7 + 5
    return PointAward(points, ev, 70 if quote.items else 40)


def _price_anomalies(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 20.0
    average = _average_price_sqm(enrichment)
    if average is not None:
        per_sqm = _price_per_sqm(quote, average)
        if ev.check(per_sqm > 1.5 * average, "price above 150% of regional average"):
            points -= 10
        if ev.check(per_sqm < 0.5 * average, "price below 50% of regional average"):
            points -= 5
    else:
        ev.absent("regional price per m2")
    totals = quote.extracted_data.totals
    if totals.total and totals.subtotal is not None and totals.tva is not None:
        computed = totals.subtotal + totals.tva
        if ev.check(
            abs(computed - totals.total) / totals.total > _TOTALS_TOLERANCE,
            "totals inconsistent with subtotal plus VAT",
        ):
            points -= 3
    return PointAward(max(0.0, points), ev, 85)


def _quality_price_ratio(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    claims = ev.keyword(_QUALITY_CLAIMS, text)
    detailed = ev.check(
        any(len(i.description) > 50 for i in quote.items), "detailed line descriptions"
    )
    if claims and detailed:
        points = 23.0
    elif claims or detailed:
        points = 15.0
    else:
        points = 8.0
    points += 12 if ev.keyword(_SAVINGS, text) else 5
    points += 8 if ev.keyword(_DURABILITY, text) else 3
    return PointAward(points, ev, 70)


def _negotiation_potential(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    average = _average_price_sqm(enrichment)
    if average is not None:
        above = ev.check(
            _price_per_sqm(quote, average) > 1.1 * average, "price above regional average"
        )
        points = 12.0 if above else 8.0
    else:
        ev.absent("regional price per m2")
        points = 7.0
    descriptions = [i.description for i in quote.items]
    points += 8 if ev.check(_OPTIONS.matches_any(descriptions), _OPTIONS.label) else 5
    return PointAward(points + 3, ev, 60)


def _payment_terms(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    schedule = ev.keyword(_PAYMENT_SCHEDULE, text)
    start = ev.check(quote.extracted_data.dates.start_date is not None, "declared start date")
    points = 12.0 if schedule or start else 5.0
    points += 8 if ev.keyword(_PAYMENT_TERMS, text) else 4
    return PointAward(points, ev, 75)


def _tax_optimisation(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 12.0 if ev.keyword(_SUBSIDIES, quote.searchable_text()) else 6.0
    rate = quote.extracted_data.totals.tva_rate
    if context.is_renovation:
        if ev.check(rate in _REDUCED_VAT_RATES, "reduced renovation VAT rate"):
            points += 10
        elif rate == _STANDARD_VAT_RATE:
            ev.note("standard VAT rate applied to renovation work")
            points += 3
    else:
        points += 6
    return PointAward(points, ev, 70)


PRICE_AXIS = RuleBasedAxis(
    axis_id=AxisId.PRICE,
    sub_criteria=(
        SubCriterion(
            id="positioning",
            label="market price positioning",
            max_points=120,
            control_points=(
                ControlPoint("benchmarking", 60, _benchmarking),
                ControlPoint("sector-ratios", 40, _sector_ratios),
                ControlPoint("price-anomalies", 20, _price_anomalies),
            ),
        ),
        SubCriterion(
            id="value",
            label="value for money",
            max_points=80,
            control_points=(
                ControlPoint("quality-price-ratio", 50, _quality_price_ratio),
                ControlPoint("negotiation-potential", 30, _negotiation_potential),
            ),
        ),
        SubCriterion(
            id="financial-terms",
            label="payment terms and financial incentives",
            max_points=50,
            control_points=(
                ControlPoint("payment-terms", 25, _payment_terms),
                ControlPoint("tax-optimisation", 25, _tax_optimisation),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.MAJOR,
            threshold=60.0,
            message="Price possibly out of market",
            impact="Reduced price score",
            recommendation="Compare with at least two other quotes for the same work",
            sub_criteria_id="positioning",
        ),
    ),
)
