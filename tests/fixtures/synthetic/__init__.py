"""Synthetic deterministic fixtures for TORP tests."""

from tests.fixtures.synthetic.quotes_fixture import (
    B2C_RENOVATION_CONTEXT,
    B2C_RENOVATION_CONTEXT_WITH_NEED,
    BASELINE_ENRICHMENT,
    FULL_ENRICHMENT,
    STATED_NEED,
    SYNTHETIC_QUOTE,
    SYNTHETIC_QUOTE_ID,
    SYNTHETIC_SIRET,
)

__all__ = [
    "B2C_RENOVATION_CONTEXT",
    "B2C_RENOVATION_CONTEXT_WITH_NEED",
    "BASELINE_ENRICHMENT",
    "FULL_ENRICHMENT",
    "STATED_NEED",
    "SYNTHETIC_QUOTE",
    "SYNTHETIC_QUOTE_ID",
    "SYNTHETIC_SIRET",
]
