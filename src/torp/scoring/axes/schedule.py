"""Schedule axis (70 points): planning realism and capacity to meet deadlines."""

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
from torp.scoring.rules import Evidence, Tier, keywords, points_at_least, points_below

_DURATION_TIERS = (Tier(0.15, 15), Tier(0.3, 12), Tier(0.5, 8))
_TRACK_RECORD_TIERS = (Tier(4.5, 15), Tier(4.0, 12), Tier(3.5, 8))
_CONTINGENCY = keywords("schedule contingency", "marge", "buffer", "aléa", "contingence")
_INTERFACES = keywords("trade interfaces", "interface", "corps d'état", "jalon", "phase")
_SEQUENCING = keywords(
    "work sequencing", "séquence", "ordre", "enchaînement", "planning détaillé"
)
_PENALTIES = keywords("late penalties", "pénalité", "retard", "sanction")
_INCENTIVES = keywords("early completion incentives", "bonus", "prime", "anticipation")


def _estimated_days(quote: Quote, context: ScoringContext) -> float:
    total = quote.total
    if context.is_renovation:
        return max(30.0, total / 50_000 * 30)
    if context.is_construction:
        return max(90.0, total / 100_000 * 60)
    return 30.0


def _timeline_coherence(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    dates = quote.extracted_data.dates
    if ev.check(
        dates.start_date is not None and dates.end_date is not None, "start and end dates"
    ):
        duration = (dates.end_date - dates.start_date).days
        estimated = _estimated_days(quote, context)
        deviation = abs(duration - estimated) / estimated
        ev.note(f"{duration} days planned against about {estimated:.0f} expected")
        points = points_below(deviation, _DURATION_TIERS, 4)
    else:
        points = 8.0
    contingency = _CONTINGENCY.matches(quote.searchable_text()) or (
        enrichment.weather_data is not None
    )
    points += 8 if ev.check(contingency, "contingency or weather allowance") else 4
    return PointAward(points, ev, 80 if dates.start_date else 50)


def _trade_coordination(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 7.0 if ev.keyword(_INTERFACES, text) else 4.0
    points += 6 if ev.keyword(_SEQUENCING, text) else 3
    return PointAward(points, ev, 65)


def _track_record(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    reputation = enrichment.company_or_empty.reputation
    rating = reputation.average_rating if reputation else None
    if ev.check(rating is not None, "customer rating"):
        points = points_at_least(rating, _TRACK_RECORD_TIERS, 4)
    else:
        points = 10.0
    return PointAward(points + 3, ev, 60 if reputation else 40)


def _contractual_commitment(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 4.0 if ev.keyword(_PENALTIES, text) else 2.0
    points += 4 if ev.keyword(_INCENTIVES, text) else 2
    return PointAward(points, ev, 55)


SCHEDULE_AXIS = RuleBasedAxis(
    axis_id=AxisId.SCHEDULE,
    sub_criteria=(
        SubCriterion(
            id="planning-realism",
            label="planning realism",
            max_points=40,
            control_points=(
                ControlPoint("timeline-coherence", 25, _timeline_coherence),
                ControlPoint("trade-coordination", 15, _trade_coordination),
            ),
        ),
        SubCriterion(
            id="deadline-capacity",
            label="capacity to meet deadlines",
            max_points=30,
            control_points=(
                ControlPoint("track-record", 20, _track_record),
                ControlPoint("contractual-commitment", 10, _contractual_commitment),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.MAJOR,
            threshold=60.0,
            message="Planning potentially unrealistic",
            impact="Risk of delays on delivery",
            recommendation="Ask for a dated schedule with contractual late penalties",
            sub_criteria_id="planning-realism",
        ),
    ),
)
