"""Quote input contracts.

A quote arrives already extracted from its source document. Every field of
the extracted data bag is optional: missing facts lower scores and confidence
inside the evaluators, they never fail validation here.

Payloads are accepted in either snake_case or the camelCase used by the
extraction service.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class InputModel(BaseModel):
    """Base for tolerant, immutable input records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


class LineItem(InputModel):
    """One priced line of the quote."""

    description: str = Field(default="", description="Free-text line description")
    quantity: float | None = Field(default=None, description="Quantity ordered")
    unit: str | None = Field(default=None, description="Unit of measure (m2, u, ml...)")
    unit_price: float | None = Field(default=None, description="Unit price excl. VAT")
    total_price: float | None = Field(default=None, description="Line total excl. VAT")
    category: str | None = Field(default=None, description="Line category if extracted")

    @property
    def amount(self) -> float:
        """Line total, falling back to the unit price."""
        return self.total_price or self.unit_price or 0.0


class QuoteCompany(InputModel):
    """Company identity as printed on the quote."""

    name: str | None = None
    siret: str | None = None
    address: str | None = None
    phone: str | None = None
    email: str | None = None


class ProjectTimeline(InputModel):
    duration: float | str | None = Field(default=None, description="Announced duration")


class ProjectInfo(InputModel):
    """Project description block of the quote."""

    title: str | None = None
    description: str | None = None
    surface: float | None = Field(default=None, description="Surface in square meters")
    location: str | None = None
    region: str | None = None
    project_type: str | None = None
    timeline: ProjectTimeline | None = None


class QuoteTotals(InputModel):
    """Declared totals and VAT."""

    subtotal: float | None = None
    tva: float | None = Field(default=None, description="VAT amount")
    tva_rate: float | None = Field(default=None, description="VAT rate in percent")
    total: float | None = None
    deposit: float | None = None


class QuoteDates(InputModel):
    issue_date: date | None = None
    valid_until: date | None = None
    start_date: date | None = None
    end_date: date | None = None


class LegalMentions(InputModel):
    """Legal mention flags detected on the quote."""

    has_insurance: bool = False
    has_guarantees: bool = False
    text: str | None = Field(default=None, description="Raw legal mention text")


class ExtractedData(InputModel):
    """Structured content extracted from the quote document."""

    company: QuoteCompany = Field(default_factory=QuoteCompany)
    project: ProjectInfo = Field(default_factory=ProjectInfo)
    items: list[LineItem] = Field(default_factory=list)
    totals: QuoteTotals = Field(default_factory=QuoteTotals)
    dates: QuoteDates = Field(default_factory=QuoteDates)
    legal_mentions: LegalMentions = Field(default_factory=LegalMentions)


def _collect_strings(value: Any, out: list[str]) -> None:
    if isinstance(value, str):
        if value:
            out.append(value)
    elif isinstance(value, dict):
        for key in sorted(value):
            _collect_strings(value[key], out)
    elif isinstance(value, list | tuple):
        for entry in value:
            _collect_strings(entry, out)


class Quote(InputModel):
    """A construction price quote submitted for scoring."""

    id: str | None = Field(default=None, description="Caller-side quote identifier")
    project_type: str = Field(default="", description="Declared project type")
    trade_type: str | None = Field(default=None, description="Trade (plomberie, toiture...)")
    total_amount: float = Field(default=0.0, ge=0.0, description="Total amount incl. VAT")
    extracted_data: ExtractedData = Field(default_factory=ExtractedData)

    @property
    def items(self) -> list[LineItem]:
        return self.extracted_data.items

    @property
    def total(self) -> float:
        """Quote total, preferring the top-level amount over extracted totals."""
        return self.total_amount or self.extracted_data.totals.total or 0.0

    def searchable_text(self) -> str:
        """Return every string value of the extracted data, lowercased.

        Only values are collected, never keys, so field names cannot
        produce keyword hits.
        """
        parts: list[str] = []
        _collect_strings(self.extracted_data.model_dump(mode="json"), parts)
        return "\n".join(parts).lower()
