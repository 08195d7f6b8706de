"""Enrichment bundle contracts.

Facts gathered by external collaborators (company registry, financial
statements, price benchmarks, weather, compliance tables). Every field may
be absent; absence is handled by the evaluators.
"""

from __future__ import annotations

from pydantic import Field

from torp.models.quote import InputModel


class Address(InputModel):
    street: str | None = None
    city: str | None = None
    postal_code: str | None = None
    region: str | None = None


class Activity(InputModel):
    code: str | None = None
    label: str = ""


class FinancialData(InputModel):
    """Multi-year financial statements, most recent year first."""

    ca: list[float] = Field(default_factory=list, description="Revenue per year")
    result: list[float] = Field(default_factory=list, description="Net result per year")
    ebitda: float | None = None
    debt: float | None = None
    last_update: str | None = None


class FinancialScore(InputModel):
    """Third-party credit ratings."""

    banque_de_france: str | None = Field(default=None, description="Banque de France rating")
    torp_prediction: float | None = Field(
        default=None, ge=0.0, le=100.0, description="Failure probability 0-100"
    )


class LegalStatusDetails(InputModel):
    has_collective_procedure: bool = False
    procedure_type: str | None = None
    procedure_date: str | None = None


class Qualification(InputModel):
    type: str = ""
    level: str | None = None
    valid_until: str | None = None
    scope: list[str] = Field(default_factory=list)


class Reputation(InputModel):
    """Aggregated review data."""

    average_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    number_of_reviews: int = Field(default=0, ge=0)
    nps: float | None = None
    sources: list[str] = Field(default_factory=list)


class Portfolio(InputModel):
    similar_projects: int | None = Field(default=None, ge=0)
    average_project_amount: float | None = None
    regions: list[str] = Field(default_factory=list)


class HumanResources(InputModel):
    employees: int | None = Field(default=None, ge=0)
    linkedin_employees: int | None = Field(default=None, ge=0, alias="linkedInEmployees")
    certifications: list[str] = Field(default_factory=list)


class Insurances(InputModel):
    has_rc: bool = Field(default=False, alias="hasRC", description="Civil liability cover")
    decennale_amount: float | None = Field(default=None, description="Ten-year cover ceiling")


class EnrichedCompany(InputModel):
    """Registry and reputation facts about the issuing company."""

    siret: str | None = None
    siren: str | None = None
    name: str | None = None
    legal_status: str | None = None
    address: Address | None = None
    activities: list[Activity] = Field(default_factory=list)
    financial_data: FinancialData | None = None
    financial_score: FinancialScore | None = None
    legal_status_details: LegalStatusDetails | None = None
    qualifications: list[Qualification] = Field(default_factory=list)
    reputation: Reputation | None = None
    portfolio: Portfolio | None = None
    human_resources: HumanResources | None = None
    insurances: Insurances | None = None


class PriceStats(InputModel):
    min: float | None = None
    average: float | None = None
    max: float | None = None


class PriceReference(InputModel):
    """Market price benchmark for one kind of work."""

    label: str | None = None
    unit: str | None = None
    prices: PriceStats = Field(default_factory=PriceStats)


class RegionalData(InputModel):
    region: str | None = None
    average_price_sqm: float | None = Field(default=None, description="Average price per m2")
    price_index: float | None = None


class ComplianceData(InputModel):
    applicable_rules: list[str] = Field(default_factory=list)
    compliant: bool | None = None


class WeatherData(InputModel):
    average_weather_days: float | None = Field(
        default=None, description="Average yearly days lost to weather"
    )
    region: str | None = None


class Dtu(InputModel):
    """Technical standard (DTU) applicable to the work."""

    code: str = ""
    name: str = ""
    applicable: bool = True
    compliance_score: float | None = Field(default=None, ge=0.0, le=100.0)


class Certification(InputModel):
    type: str = ""
    name: str = ""
    valid: bool = True


class EnrichmentBundle(InputModel):
    """All externally supplied facts for one scoring request."""

    company: EnrichedCompany | None = None
    price_references: list[PriceReference] = Field(default_factory=list)
    regional_data: RegionalData | None = None
    compliance_data: ComplianceData | None = None
    weather_data: WeatherData | None = None
    dtus: list[Dtu] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)

    @property
    def company_or_empty(self) -> EnrichedCompany:
        return self.company or EnrichedCompany()

    @property
    def certification_count(self) -> int:
        """Certifications known from HR records and the certification registry."""
        hr = self.company_or_empty.human_resources
        hr_count = len(hr.certifications) if hr else 0
        return hr_count + len(self.certifications)
