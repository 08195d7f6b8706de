"""The nine axis strategies of the scoring scheme.

Each strategy is an immutable object constructed once at import and
reused for every scoring call.
"""

from torp.scoring.axes.base import (
    AlertRule,
    AxisStrategy,
    ControlPoint,
    PointAward,
    RuleBasedAxis,
    SubCriterion,
)
from torp.scoring.axes.coherence import COHERENCE_AXIS, CoherenceAxis, extract_keywords
from torp.scoring.axes.compliance import COMPLIANCE_AXIS
from torp.scoring.axes.feasibility import FEASIBILITY_AXIS
from torp.scoring.axes.guarantees import GUARANTEES_AXIS
from torp.scoring.axes.innovation import INNOVATION_AXIS
from torp.scoring.axes.price import PRICE_AXIS
from torp.scoring.axes.quality import QUALITY_AXIS
from torp.scoring.axes.schedule import SCHEDULE_AXIS
from torp.scoring.axes.transparency import TRANSPARENCY_AXIS

DEFAULT_AXES: tuple[AxisStrategy, ...] = (
    COMPLIANCE_AXIS,
    PRICE_AXIS,
    QUALITY_AXIS,
    FEASIBILITY_AXIS,
    TRANSPARENCY_AXIS,
    GUARANTEES_AXIS,
    INNOVATION_AXIS,
    SCHEDULE_AXIS,
    COHERENCE_AXIS,
)

__all__ = [
    "COHERENCE_AXIS",
    "COMPLIANCE_AXIS",
    "DEFAULT_AXES",
    "FEASIBILITY_AXIS",
    "GUARANTEES_AXIS",
    "INNOVATION_AXIS",
    "PRICE_AXIS",
    "QUALITY_AXIS",
    "SCHEDULE_AXIS",
    "TRANSPARENCY_AXIS",
    "AlertRule",
    "AxisStrategy",
    "CoherenceAxis",
    "ControlPoint",
    "PointAward",
    "RuleBasedAxis",
    "SubCriterion",
    "extract_keywords",
]
