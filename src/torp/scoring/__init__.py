"""TORP scoring scheme: models, context, axis configs, rules and strategies.

The orchestrator lives in torp.engine.
"""

from torp.scoring.axis_configs import (
    SCHEME_MAX_POINTS,
    SCORING_VERSION,
    AxisConfig,
    AxisConfigNotFoundError,
    get_axis_config,
    list_axis_configs,
    total_weighted_max,
)
from torp.scoring.config import ScoringConfig, ScoringConfigError, load_scoring_config
from torp.scoring.context import (
    DEFAULT_REGION,
    NeedConstraints,
    ScoringContext,
    ScoringContextError,
    StatedNeed,
    build_scoring_context,
)
from torp.scoring.models import (
    ALL_AXES,
    GLOBAL_MAX_POINTS,
    Alert,
    AlertSeverity,
    AxisId,
    AxisScore,
    ControlPointScore,
    FinalScore,
    Grade,
    MLAdjustment,
    Profile,
    ProjectAmount,
    ProjectType,
    Recommendation,
    RecommendationPriority,
    ScoringMetadata,
    SubCriteriaScore,
)
from torp.scoring.registry import (
    AxisNotRegisteredError,
    AxisStrategyRegistry,
    build_default_registry,
)

__all__ = [
    "ALL_AXES",
    "DEFAULT_REGION",
    "GLOBAL_MAX_POINTS",
    "SCHEME_MAX_POINTS",
    "SCORING_VERSION",
    "Alert",
    "AlertSeverity",
    "AxisConfig",
    "AxisConfigNotFoundError",
    "AxisId",
    "AxisNotRegisteredError",
    "AxisScore",
    "AxisStrategyRegistry",
    "ControlPointScore",
    "FinalScore",
    "Grade",
    "MLAdjustment",
    "NeedConstraints",
    "Profile",
    "ProjectAmount",
    "ProjectType",
    "Recommendation",
    "RecommendationPriority",
    "ScoringConfig",
    "ScoringConfigError",
    "ScoringContext",
    "ScoringContextError",
    "ScoringMetadata",
    "StatedNeed",
    "SubCriteriaScore",
    "build_default_registry",
    "build_scoring_context",
    "get_axis_config",
    "list_axis_configs",
    "load_scoring_config",
    "total_weighted_max",
]
