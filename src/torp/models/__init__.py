"""Input data contracts for quote scoring."""

from torp.models.enrichment import (
    Activity,
    Address,
    Certification,
    ComplianceData,
    Dtu,
    EnrichedCompany,
    EnrichmentBundle,
    FinancialData,
    FinancialScore,
    HumanResources,
    Insurances,
    LegalStatusDetails,
    Portfolio,
    PriceReference,
    PriceStats,
    Qualification,
    RegionalData,
    Reputation,
    WeatherData,
)
from torp.models.quote import (
    ExtractedData,
    LegalMentions,
    LineItem,
    ProjectInfo,
    ProjectTimeline,
    Quote,
    QuoteCompany,
    QuoteDates,
    QuoteTotals,
)

__all__ = [
    "Activity",
    "Address",
    "Certification",
    "ComplianceData",
    "Dtu",
    "EnrichedCompany",
    "EnrichmentBundle",
    "ExtractedData",
    "FinancialData",
    "FinancialScore",
    "HumanResources",
    "Insurances",
    "LegalMentions",
    "LegalStatusDetails",
    "LineItem",
    "Portfolio",
    "PriceReference",
    "PriceStats",
    "ProjectInfo",
    "ProjectTimeline",
    "Qualification",
    "Quote",
    "QuoteCompany",
    "QuoteDates",
    "QuoteTotals",
    "RegionalData",
    "Reputation",
    "WeatherData",
]
