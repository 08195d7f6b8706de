"""Compliance axis (350 points).

- dtu-standards (140): technical standards, product certifications, energy rules
- qualifications (110): trade qualifications, legal status, insurance
- safety-accessibility (100): fire safety, accessibility, acoustics
"""

from __future__ import annotations

import re

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

_PRODUCT_REFERENCES = keywords(
    "product brand or standard references", "marque", "référence", "norme"
)
_INSTALLATION = keywords(
    "installation method", "mise en œuvre", "mise en oeuvre", "technique", "pose"
)
_CE_MARKING = keywords("CE marking", "ce", "marquage ce")
_NF_STANDARDS = keywords("NF/ACERMI standards", "nf", "norme nf", "acermi")
_CERT_NUMBER = re.compile(r"\b(cert|certif|no|n°)\s*[:.]?\s*[a-z0-9]{5,}")
_RE2020 = keywords("RE2020 reference", "re2020", "re 2020", "réglementation environnementale")
_RE2020_INDICATORS = keywords(
    "Bbio/Cep indicators", "bbio", "besoin bioclimatique", "cep", "consommation énergétique"
)
_CARBON = keywords("carbon impact data", "carbone", "ic", "fdes")
_ENERGY_RENOVATION = keywords(
    "energy renovation commitment", "performance énergétique", "rénovation énergétique", "rge"
)
_FIRE_CLASS = keywords("fire reaction class", "m0", "m1", "classement feu", "réaction au feu")
_PUBLIC_BUILDING = keywords(
    "public building rules", "erp", "établissement recevant du public", "commission sécurité"
)
_ACCESSIBILITY = keywords("accessibility", "pmr", "accessibilité", "handicap", "largeur")
_ACCESSIBILITY_EQUIPMENT = keywords(
    "accessibility equipment", "rampe", "monte-charge", "sanitaire adapté", "w.c. pmr"
)
_ACOUSTICS = keywords("acoustic rules", "acoustique", "nra", "isolement phonique", "db")
_ACOUSTIC_DETAILS = keywords(
    "bridge treatment details", "pont thermique", "pont phonique", "rupteur", "détail"
)
_QUALIFICATION_BODIES = ("qualibat", "qualifelec")
_RGE = "rge"


def _descriptions(quote: Quote) -> list[str]:
    return [item.description for item in quote.items]


def _dtu_specific(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 0.0
    applicable = [d for d in enrichment.dtus if d.applicable]
    if ev.check(bool(applicable), "applicable DTU references"):
        points += min(15, len(applicable) * 3)
    descriptions = _descriptions(quote)
    if ev.check(_PRODUCT_REFERENCES.matches_any(descriptions), _PRODUCT_REFERENCES.label):
        points += 15
    if ev.check(_INSTALLATION.matches_any(descriptions), _INSTALLATION.label):
        points += min(5, points * 0.1)
    mentions = quote.extracted_data.legal_mentions
    if ev.check(
        mentions.has_guarantees or mentions.has_insurance, "guarantee or insurance mention"
    ):
        points += 10
    all_compliant = bool(enrichment.dtus) and all(
        d.compliance_score is not None and d.compliance_score >= 80 for d in enrichment.dtus
    )
    if ev.check(all_compliant, "DTU compliance scores >= 80"):
        points = min(50, points + 5)
    return PointAward(points, ev, 85 if enrichment.dtus else 60)


def _product_certifications(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 0.0
    text = "\n".join(_descriptions(quote)).lower()
    if ev.keyword(_CE_MARKING, text):
        points += 10
    if ev.keyword(_NF_STANDARDS, text):
        points += 12
    if ev.check(_CERT_NUMBER.search(text) is not None, "certificate numbers"):
        points += 8
    return PointAward(points, ev, 70)


def _energy_performance(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 0.0
    if context.is_construction:
        has_re2020 = ev.keyword(_RE2020, text)
        has_indicators = ev.keyword(_RE2020_INDICATORS, text)
        if has_re2020 and has_indicators:
            points += 25
        elif has_re2020:
            points += 15
        if ev.keyword(_CARBON, text):
            points += 15
        return PointAward(points, ev, 80)
    if ev.keyword(_ENERGY_RENOVATION, text):
        points += 30
    else:
        points += 15
    ev.note("non-construction project: energy rules judged on renovation commitments")
    return PointAward(points, ev, 60)


def _trade_qualifications(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 0.0
    certs = enrichment.certifications
    recognized = any(
        any(body in c.type.lower() for body in _QUALIFICATION_BODIES) for c in certs
    )
    if ev.check(recognized, "Qualibat/Qualifelec qualification"):
        points += 18
    trade = (context.trade_type or quote.trade_type or "").lower()
    trade_certs = [c for c in certs if not trade or trade in c.name.lower()]
    if ev.check(bool(trade_certs), "certifications for the trade"):
        points += 12
    has_rge = any(_RGE in c.type.lower() or _RGE in c.name.lower() for c in certs)
    if context.is_renovation:
        if ev.check(has_rge, "RGE label for renovation"):
            points += 10
    else:
        points += 5
    siret = enrichment.company_or_empty.siret
    return PointAward(points, ev, 85 if siret else 50)


def _legal_status(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 0.0
    company = enrichment.company_or_empty
    has_siret = ev.check(bool(company.siret), "registered SIRET")
    if has_siret and ev.check(bool(company.activities), "registered activities"):
        points += 15
        trade = (context.trade_type or quote.trade_type or "").lower()
        if trade and ev.check(
            any(trade in a.label.lower() for a in company.activities),
            "activity matching the trade",
        ):
            points += 2
    elif has_siret:
        points += 10
    details = company.legal_status_details
    in_procedure = details is not None and details.has_collective_procedure
    if not ev.check(in_procedure, "collective insolvency procedure"):
        points += 10
    return PointAward(points, ev, 90 if has_siret else 40)


def _insurance(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    points = 0.0
    mentioned = ev.check(
        quote.extracted_data.legal_mentions.has_insurance, "insurance mentioned on quote"
    )
    if mentioned:
        points += 20
    insurances = enrichment.company_or_empty.insurances
    has_rc = insurances is not None and insurances.has_rc
    if ev.check(mentioned or has_rc, "civil liability cover"):
        points += 8
    return PointAward(points, ev, 75 if mentioned else 50)


def _fire_safety(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 18.0 if ev.keyword(_FIRE_CLASS, text) else 0.0
    points += 18 if ev.keyword(_PUBLIC_BUILDING, text) else 10
    return PointAward(points, ev, 70)


def _accessibility(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 12.0 if ev.keyword(_ACCESSIBILITY, text) else 0.0
    points += 12 if ev.keyword(_ACCESSIBILITY_EQUIPMENT, text) else 3
    return PointAward(points, ev, 65)


def _acoustics(
    quote: Quote, enrichment: EnrichmentBundle, context: ScoringContext
) -> PointAward:
    ev = Evidence()
    text = quote.searchable_text()
    points = 18.0 if ev.keyword(_ACOUSTICS, text) else 0.0
    points += 8 if ev.keyword(_ACOUSTIC_DETAILS, text) else 3
    return PointAward(points, ev, 60)


COMPLIANCE_AXIS = RuleBasedAxis(
    axis_id=AxisId.COMPLIANCE,
    sub_criteria=(
        SubCriterion(
            id="dtu-standards",
            label="technical standards and product certifications",
            max_points=140,
            control_points=(
                ControlPoint("dtu-specific", 50, _dtu_specific),
                ControlPoint("product-certifications", 40, _product_certifications),
                ControlPoint("energy-performance", 50, _energy_performance),
            ),
        ),
        SubCriterion(
            id="qualifications",
            label="company qualifications and insurance",
            max_points=110,
            control_points=(
                ControlPoint("trade-qualifications", 45, _trade_qualifications),
                ControlPoint("legal-status", 35, _legal_status),
                ControlPoint("insurance", 30, _insurance),
            ),
        ),
        SubCriterion(
            id="safety-accessibility",
            label="safety and accessibility provisions",
            max_points=100,
            control_points=(
                ControlPoint("fire-safety", 40, _fire_safety),
                ControlPoint("accessibility", 30, _accessibility),
                ControlPoint("acoustics", 30, _acoustics),
            ),
        ),
    ),
    alert_rules=(
        AlertRule(
            severity=AlertSeverity.MAJOR,
            threshold=60.0,
            message="Regulatory compliance insufficiently demonstrated",
            impact="Risk of non-conforming work and refused acceptance",
            recommendation="Request the applicable DTU references and contractor qualifications",
        ),
    ),
)
