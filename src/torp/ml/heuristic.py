"""Rule-based ML provider.

Three small predictors (price, quality, risk) each return a point
adjustment with an importance weight. The predicted score is the base
score plus every adjustment, clamped to the global scale.
"""

from __future__ import annotations

import logging
from typing import NamedTuple

from torp.ml.features import MLFeatures, ProjectSize
from torp.ml.provider import MLPrediction
from torp.scoring.models import GLOBAL_MAX_POINTS
from torp.scoring.rules import clamp

logger = logging.getLogger(__name__)

MAX_ENRICHMENT_SOURCES = 5


class PredictorResult(NamedTuple):
    adjustment: float
    importance: float


def predict_price_adjustment(features: MLFeatures) -> PredictorResult:
    """Expensive line items cost points, cheap ones earn a few.

    Only applies when price references are available to compare against.
    """
    if not features.has_price_references:
        return PredictorResult(0.0, 0.0)
    adjustment = 0.0
    importance = 0.0
    if features.average_item_price > 500:
        adjustment -= 20
        importance = 0.8
    elif features.average_item_price < 100:
        adjustment += 10
        importance = 0.6
    if features.project_size == ProjectSize.LARGE and features.items_count < 20:
        adjustment -= 15
        importance = max(importance, 0.7)
    return PredictorResult(adjustment, importance)


def predict_quality_adjustment(features: MLFeatures) -> PredictorResult:
    adjustment = 0.0
    if features.items_description_quality > 0.8:
        adjustment += 15
    elif features.items_description_quality < 0.5:
        adjustment -= 20
    if features.technical_details_completeness > 0.9:
        adjustment += 10
    elif features.technical_details_completeness < 0.6:
        adjustment -= 15
    if features.materials_specified > features.items_count * 0.3:
        adjustment += 5
    return PredictorResult(adjustment, 0.7)


def predict_risk_adjustment(features: MLFeatures) -> PredictorResult:
    adjustment = 0.0
    importance = 0.6
    if not features.company_has_financial_data:
        adjustment -= 10
        importance = 0.8
    if not features.company_has_certifications and features.project_size == ProjectSize.LARGE:
        adjustment -= 15
        importance = 0.9
    if features.enrichment_sources_count < 2:
        adjustment -= 5
    return PredictorResult(adjustment, importance)


def data_quality_confidence(features: MLFeatures) -> float:
    """Confidence grows with enrichment coverage and line-item detail."""
    confidence = (
        0.5
        + features.enrichment_sources_count / MAX_ENRICHMENT_SOURCES * 0.2
        + features.items_description_quality * 0.15
        + features.technical_details_completeness * 0.15
    )
    return min(1.0, confidence)


class HeuristicMLProvider:
    """In-process provider built from the three predictors."""

    def predict(self, features: MLFeatures, base_score: float) -> MLPrediction:
        price = predict_price_adjustment(features)
        quality = predict_quality_adjustment(features)
        risk = predict_risk_adjustment(features)
        adjustments = {
            "price": price.adjustment,
            "quality": quality.adjustment,
            "risk": risk.adjustment,
        }
        predicted = clamp(base_score + sum(adjustments.values()), 0.0, GLOBAL_MAX_POINTS)
        logger.debug(
            "Heuristic prediction %.1f from base %.1f (%s)", predicted, base_score, adjustments
        )
        return MLPrediction(
            predicted_score=predicted,
            confidence=data_quality_confidence(features),
            adjustments=adjustments,
            feature_importance={
                "total_amount": price.importance,
                "enrichment_sources_count": risk.importance,
                "company_has_financial_data": risk.importance,
                "items_description_quality": quality.importance * 0.8,
                "technical_details_completeness": quality.importance * 0.6,
            },
        )
