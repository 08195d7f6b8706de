"""ML score adjustment: features, provider port and reference providers."""

from torp.ml.features import MLFeatures, ProjectSize, extract_features, project_size_for
from torp.ml.heuristic import HeuristicMLProvider
from torp.ml.http_provider import HttpMLProvider
from torp.ml.provider import MLPrediction, MLProvider, MLProviderError

__all__ = [
    "HeuristicMLProvider",
    "HttpMLProvider",
    "MLFeatures",
    "MLPrediction",
    "MLProvider",
    "MLProviderError",
    "ProjectSize",
    "extract_features",
    "project_size_for",
]
