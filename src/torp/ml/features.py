"""Feature extraction for ML score adjustment.

Features are derived from the quote and the enrichment bundle only; they
never read axis results, so a provider sees the same inputs as the axes.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from torp.models.enrichment import EnrichmentBundle
from torp.models.quote import Quote
from torp.scoring.rules import keywords

DETAILED_DESCRIPTION_LENGTH = 50
LARGE_PROJECT_AMOUNT = 100_000
MEDIUM_PROJECT_AMOUNT = 30_000

_MATERIAL_REFERENCES = keywords("material references", "marque", "référence", "modèle")


class ProjectSize(StrEnum):
    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class MLFeatures(BaseModel):
    """Flat feature vector sent to ML providers."""

    model_config = ConfigDict(frozen=True)

    total_amount: float = Field(..., ge=0.0, description="Quote total")
    price_per_sqm: float | None = Field(default=None, description="Total divided by surface")
    items_count: int = Field(..., ge=0)
    average_item_price: float = Field(..., ge=0.0)

    company_has_siret: bool
    company_has_financial_data: bool
    company_has_certifications: bool
    enrichment_sources_count: int = Field(..., ge=0, le=5)

    has_price_references: bool
    has_regional_data: bool
    has_compliance_data: bool

    items_description_quality: float = Field(
        ..., ge=0.0, le=1.0, description="Share of line items with a detailed description"
    )
    technical_details_completeness: float = Field(
        ..., ge=0.0, le=1.0, description="Share of line items with unit, quantity and price"
    )
    materials_specified: int = Field(
        ..., ge=0, description="Line items naming a brand, reference or model"
    )

    project_type: str
    region: str | None = None
    project_size: ProjectSize


def project_size_for(amount: float) -> ProjectSize:
    if amount > LARGE_PROJECT_AMOUNT:
        return ProjectSize.LARGE
    if amount > MEDIUM_PROJECT_AMOUNT:
        return ProjectSize.MEDIUM
    return ProjectSize.SMALL


def extract_features(quote: Quote, enrichment: EnrichmentBundle) -> MLFeatures:
    """Build the feature vector for one quote.

    Args:
        quote: Quote being scored.
        enrichment: Enrichment facts for the quote.

    Returns:
        MLFeatures. Ratios are 0 when the quote has no line items.
    """
    items = quote.items
    total = max(0.0, quote.total)
    company = enrichment.company_or_empty
    project = quote.extracted_data.project

    has_siret = bool(company.siret or quote.extracted_data.company.siret)
    has_financial = company.financial_data is not None
    has_prices = bool(enrichment.price_references)
    has_regional = enrichment.regional_data is not None
    has_compliance = enrichment.compliance_data is not None
    sources = sum((has_siret, has_financial, has_prices, has_regional, has_compliance))

    count = len(items)
    if count:
        detailed = sum(1 for i in items if len(i.description) > DETAILED_DESCRIPTION_LENGTH)
        complete = sum(
            1
            for i in items
            if i.unit and i.quantity is not None and i.unit_price is not None
        )
        description_quality = detailed / count
        completeness = complete / count
        average_item_price = sum(i.amount for i in items) / count
    else:
        description_quality = 0.0
        completeness = 0.0
        average_item_price = 0.0

    surface = project.surface
    region = project.region or (enrichment.regional_data.region if has_regional else None)

    return MLFeatures(
        total_amount=total,
        price_per_sqm=total / surface if total and surface and surface > 0 else None,
        items_count=count,
        average_item_price=max(0.0, average_item_price),
        company_has_siret=has_siret,
        company_has_financial_data=has_financial,
        company_has_certifications=enrichment.certification_count > 0,
        enrichment_sources_count=sources,
        has_price_references=has_prices,
        has_regional_data=has_regional,
        has_compliance_data=has_compliance,
        items_description_quality=description_quality,
        technical_details_completeness=completeness,
        materials_specified=sum(
            1 for i in items if _MATERIAL_REFERENCES.matches(i.description.lower())
        ),
        project_type=quote.project_type or project.project_type or "",
        region=region,
        project_size=project_size_for(total),
    )
