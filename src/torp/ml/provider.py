"""ML provider port.

The scoring engine depends on this protocol only. A provider turns the
feature vector and the rule-based score into a predicted score with a
confidence; the engine decides how much of it to blend in.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

from torp.ml.features import MLFeatures
from torp.scoring.models import GLOBAL_MAX_POINTS


class MLProviderError(Exception):
    """Raised when a provider cannot produce a prediction."""


class MLPrediction(BaseModel):
    """Output of an ML provider."""

    model_config = ConfigDict(frozen=True)

    predicted_score: float = Field(..., ge=0.0, le=GLOBAL_MAX_POINTS)
    confidence: float = Field(..., ge=0.0, le=1.0, description="Model confidence 0-1")
    adjustments: dict[str, float] = Field(
        default_factory=dict, description="Point adjustment per predictor"
    )
    feature_importance: dict[str, float] = Field(default_factory=dict)


@runtime_checkable
class MLProvider(Protocol):
    """Protocol for score adjustment providers."""

    def predict(self, features: MLFeatures, base_score: float) -> MLPrediction:
        """Predict a score for the quote.

        Args:
            features: Feature vector extracted from the quote and enrichment.
            base_score: Rule-based score on the 1350-point scale.

        Raises:
            MLProviderError: If no prediction can be produced.
        """
        ...
