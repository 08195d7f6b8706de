"""Quality axis (200 points): company solidity, reputation, human capital."""

from __future__ import annotations

import math

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
from torp.scoring.rules import Evidence, Tier, points_at_least, points_below

_CAPACITY_TIERS = (Tier(0.2, 15), Tier(0.5, 12), Tier(1.0, 7))
_SOUND_BDF_RATINGS = frozenset({"3+", "4-", "3"})
_WEAK_BDF_RATINGS = frozenset({"5", "6", "7"})
_FAILURE_TIERS = (Tier(10, 0), Tier(25, -5), Tier(50, -10))
_NPS_TIERS = (Tier(50, 15), Tier(30, 12), Tier(10, 8))
_PORTFOLIO_TIERS = (Tier(10, 20), Tier(5, 15), Tier(1, 10))
_CERTIFICATION_TIERS = (Tier(5, 15), Tier(2, 10))
_REVENUE_PER_EMPLOYEE = 150_000
_QUALITY_LABELS = ("qualité", "iso", "label")


def _economic_health(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    financial = enrichment.company_or_empty.financial_data
    revenue = financial.ca if financial else []
    results = financial.result if financial else []

    if ev.check(len(revenue) >= 2 and revenue[1] > 0, "multi-year revenue"):
        growth = (revenue[0] - revenue[1]) / revenue[1]
        previous = revenue[2] if len(revenue) > 2 else revenue[1]
        prior_growth = (revenue[1] - previous) / previous if previous > 0 else 0.0
        ev.note(f"revenue growth {growth:+.0%}")
        if growth > 0.1 and prior_growth >= 0:
            points = 18.0
        elif growth > 0:
            points = 12.0
        elif growth > -0.1:
            points = 8.0
        else:
            points = 3.0
    else:
        points = 10.0

    if ev.check(bool(results), "net results"):
        average = sum(results) / len(results)
        if results[0] > 0 and average > 0:
            points += 15
        elif results[0] > 0:
            points += 10
        else:
            points += 5
    else:
        points += 7

    if ev.check(bool(revenue) and revenue[0] > 0, "revenue for capacity check"):
        ratio = quote.total / revenue[0]
        ev.note(f"quote is {ratio:.0%} of yearly revenue")
        points += points_below(ratio, _CAPACITY_TIERS, 2)
    else:
        points += 8
    return PointAward(points, ev, 85 if financial else 50)


def _failure_prediction(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    company = enrichment.company_or_empty
    rating = company.financial_score
    points = 30.0

    bdf = rating.banque_de_france if rating else None
    if ev.check(bool(bdf), "Banque de France rating"):
        if bdf == "4":
            points -= 3
        elif bdf in _WEAK_BDF_RATINGS:
            points -= 10
        elif bdf not in _SOUND_BDF_RATINGS:
            points -= 15
    else:
        points -= 2

    prediction = rating.torp_prediction if rating else None
    if ev.check(prediction is not None, "failure probability"):
        points += points_below(prediction, _FAILURE_TIERS, -15)
    else:
        details = company.legal_status_details
        financial = company.financial_data
        in_procedure = details is not None and details.has_collective_procedure
        losing = financial is not None and bool(financial.result) and financial.result[0] < 0
        if ev.check(in_procedure or losing, "insolvency procedure or net loss"):
            points -= 8
    return PointAward(max(0.0, points), ev, 80 if rating else 60)


def _customer_satisfaction(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    reputation = enrichment.company_or_empty.reputation
    rating = reputation.average_rating if reputation else None
    reviews = reputation.number_of_reviews if reputation else 0

    if ev.check(rating is not None, "average customer rating"):
        if rating >= 4.5 and reviews >= 10:
            points = 25.0
        elif rating >= 4.0 and reviews >= 5:
            points = 20.0
        elif rating >= 3.5:
            points = 12.0
        elif rating >= 3.0:
            points = 6.0
        else:
            points = 2.0
        if reviews >= 50:
            points = min(25.0, points + 2)
        ev.note(f"{rating:.1f}/5 over {reviews} reviews")
    else:
        points = 12.0

    nps = reputation.nps if reputation else None
    if ev.check(nps is not None, "net promoter score"):
        points += points_at_least(nps, _NPS_TIERS, 4)
    elif rating is not None:
        points += points_at_least(rating, (Tier(4.5, 12), Tier(4.0, 9)), 5)
    else:
        points += 5
    return PointAward(points, ev, 75 if reputation else 40)


def _portfolio(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    portfolio = enrichment.company_or_empty.portfolio
    similar = portfolio.similar_projects if portfolio else None
    if ev.check(similar is not None, "similar past projects"):
        points = points_at_least(similar, _PORTFOLIO_TIERS, 5)
    else:
        points = 10.0
    labelled = any(
        any(label in c.name.lower() for label in _QUALITY_LABELS)
        for c in enrichment.certifications
    )
    points += 10 if ev.check(labelled, "quality label or ISO certification") else 4
    return PointAward(points, ev, 70 if portfolio else 50)


def _workforce(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    hr = enrichment.company_or_empty.human_resources
    employees = None
    if hr is not None:
        employees = hr.employees if hr.employees is not None else hr.linkedin_employees
    total = quote.total
    if ev.check(bool(employees) and total > 0, "headcount"):
        required = math.ceil(total / _REVENUE_PER_EMPLOYEE)
        if employees >= 0.8 * required:
            points = 15.0
        elif employees >= 0.5 * required:
            points = 10.0
        else:
            points = 5.0
        ev.note(f"{employees} employees for an estimated need of {required}")
    else:
        points = 8.0
    certifications = enrichment.certification_count
    ev.check(certifications > 0, "staff or company certifications")
    points += points_at_least(certifications, _CERTIFICATION_TIERS, 5)
    return PointAward(points, ev, 75 if employees else 50)


def _equipment(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    address = enrichment.company_or_empty.address
    local = ev.check(address is not None and bool(address.region), "company region")
    return PointAward(12 + (8 if local else 5), ev, 50)


QUALITY_AXIS = RuleBasedAxis(
    axis_id=AxisId.QUALITY,
    sub_criteria=(
        SubCriterion(
            id="financial-strength",
            label="financial strength",
            max_points=80,
            control_points=(
                ControlPoint("economic-health", 50, _economic_health),
                ControlPoint("failure-prediction", 30, _failure_prediction),
            ),
        ),
        SubCriterion(
            id="reputation",
            label="reputation and references",
            max_points=70,
            control_points=(
                ControlPoint("customer-satisfaction", 40, _customer_satisfaction),
                ControlPoint("portfolio", 30, _portfolio),
            ),
        ),
        SubCriterion(
            id="human-capital",
            label="human and material resources",
            max_points=50,
            control_points=(
                ControlPoint("workforce", 30, _workforce),
                ControlPoint("equipment", 20, _equipment),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.CRITICAL,
            threshold=50.0,
            message="Financial risk detected: company potentially in difficulty",
            impact="Reduced company quality score",
            recommendation="Ask for a financial guarantee before paying any deposit",
            sub_criteria_id="financial-strength",
        ),
    ),
)
