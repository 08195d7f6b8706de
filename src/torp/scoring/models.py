"""Scoring domain models.

Defines the output side of the multi-axis scoring scheme:
- ControlPointScore: atomic bounded score with justification and confidence
- SubCriteriaScore: sum of 2-4 control points under a declared budget
- AxisScore: one of nine evaluation axes with its alerts and recommendations
- FinalScore: normalized 1350-point report with grade and confidence

All models are frozen; a report is assembled once per scoring call.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

GLOBAL_MAX_POINTS = 1350
_SCORE_TOLERANCE = 1e-6


class Profile(StrEnum):
    """Caller profile driving per-axis re-weighting."""

    B2C = "B2C"
    B2B = "B2B"


class ProjectType(StrEnum):
    CONSTRUCTION = "construction"
    RENOVATION = "renovation"
    EXTENSION = "extension"
    MAINTENANCE = "maintenance"


class ProjectAmount(StrEnum):
    """Project amount band: <10k, 10-50k, >50k."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class AxisId(StrEnum):
    """The nine evaluation axes, in evaluation order."""

    COMPLIANCE = "compliance"
    PRICE = "price"
    QUALITY = "quality"
    FEASIBILITY = "feasibility"
    TRANSPARENCY = "transparency"
    GUARANTEES = "guarantees"
    INNOVATION = "innovation"
    SCHEDULE = "schedule"
    COHERENCE = "coherence"


ALL_AXES: tuple[AxisId, ...] = tuple(AxisId)


class Grade(StrEnum):
    A_PLUS = "A+"
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


class AlertSeverity(StrEnum):
    CRITICAL = "critical"
    MAJOR = "major"
    MINOR = "minor"


class RecommendationPriority(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_RANK: dict[RecommendationPriority, int] = {
    RecommendationPriority.HIGH: 0,
    RecommendationPriority.MEDIUM: 1,
    RecommendationPriority.LOW: 2,
}


class ControlPointScore(BaseModel):
    """Score of a single control point.

    The justification lists which signals were found and which were
    assumed absent, so an auditor can rebuild the point award.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Control point identifier")
    score: float = Field(..., ge=0.0, description="Points awarded")
    max_points: float = Field(..., gt=0.0, description="Points possible")
    justification: str = Field(..., min_length=1, description="Signals found / absent")
    confidence: float = Field(..., ge=0.0, le=100.0, description="Confidence 0-100")

    @model_validator(mode="after")
    def _score_within_budget(self) -> ControlPointScore:
        """Fail closed: a control point never exceeds its budget."""
        if self.score > self.max_points + _SCORE_TOLERANCE:
            raise ValueError(
                f"Control point '{self.id}' score {self.score} exceeds max {self.max_points}"
            )
        return self


class SubCriteriaScore(BaseModel):
    """Group of control points under a declared budget.

    max_points is declared by the sub-criterion definition rather than
    recomputed, so evaluators may deliberately skip inapplicable points.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    score: float = Field(..., ge=0.0)
    max_points: float = Field(..., gt=0.0)
    control_points: list[ControlPointScore] = Field(default_factory=list)

    @model_validator(mode="after")
    def _score_is_sum(self) -> SubCriteriaScore:
        """Fail closed: score must equal the sum of its control points."""
        total = sum(cp.score for cp in self.control_points)
        if abs(total - self.score) > _SCORE_TOLERANCE:
            raise ValueError(
                f"Sub-criterion '{self.id}' score {self.score} != control point sum {total}"
            )
        return self

    @property
    def percentage(self) -> float:
        return self.score / self.max_points * 100


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: AlertSeverity
    axis_id: AxisId
    sub_criteria_id: str | None = None
    control_point_id: str | None = None
    message: str = Field(..., min_length=1)
    impact: str = Field(..., min_length=1, description="Consequence for the client")
    recommendation: str | None = None


class Recommendation(BaseModel):
    model_config = ConfigDict(frozen=True)

    priority: RecommendationPriority
    category: str = Field(..., min_length=1, description="Axis id or 'general'")
    suggestion: str = Field(..., min_length=1)
    potential_impact: str = Field(..., description="Estimated point upside")
    actionable: bool = True


class AxisScore(BaseModel):
    """Result of one axis strategy.

    Raw strategy output carries the axis budget as max_points; the final
    report carries the profile-weighted score and budget instead.
    """

    model_config = ConfigDict(frozen=True)

    axis_id: AxisId
    score: float = Field(..., ge=0.0)
    max_points: float = Field(..., gt=0.0)
    percentage: float = Field(..., ge=0.0, le=100.0 + _SCORE_TOLERANCE)
    sub_criteria: list[SubCriteriaScore] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    recommendations: list[Recommendation] = Field(default_factory=list)

    @model_validator(mode="after")
    def _score_within_budget(self) -> AxisScore:
        if self.score > self.max_points + _SCORE_TOLERANCE:
            raise ValueError(
                f"Axis '{self.axis_id}' score {self.score} exceeds max {self.max_points}"
            )
        return self


class MLAdjustment(BaseModel):
    """ML blend metadata, attached only when the provider succeeded."""

    model_config = ConfigDict(frozen=True)

    base_score: float
    predicted_score: float
    ml_weight: float = Field(..., ge=0.0, le=0.3)
    adjustments: dict[str, float] = Field(default_factory=dict)
    feature_importance: dict[str, float] = Field(default_factory=dict)
    confidence: float = Field(..., ge=0.0, le=1.0)


class ScoringMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile: Profile
    project_type: ProjectType
    project_amount: ProjectAmount
    region: str
    version: str
    enriched_data_sources: list[str] = Field(default_factory=list)
    evaluated_at: str = Field(..., description="ISO-8601 UTC evaluation timestamp")


class FinalScore(BaseModel):
    """Complete scoring report for one quote."""

    model_config = ConfigDict(frozen=True)

    total_score: float = Field(..., ge=0.0, le=GLOBAL_MAX_POINTS)
    grade: Grade
    percentage: float = Field(..., ge=0.0, le=100.0)
    axis_scores: list[AxisScore]
    overall_alerts: list[Alert] = Field(default_factory=list)
    overall_recommendations: list[Recommendation] = Field(default_factory=list)
    confidence_level: float = Field(..., ge=0.0, le=100.0)
    ml_adjustment: MLAdjustment | None = None
    metadata: ScoringMetadata

    @model_validator(mode="after")
    def _require_all_axes(self) -> FinalScore:
        """Fail closed: a report covers every axis exactly once, in order."""
        present = tuple(axis.axis_id for axis in self.axis_scores)
        if present != ALL_AXES:
            raise ValueError(
                f"FinalScore must contain axes {[a.value for a in ALL_AXES]}, "
                f"got {[a.value for a in present]}"
            )
        if any(
            alert.severity == AlertSeverity.MINOR for alert in self.overall_alerts
        ):
            raise ValueError("Overall alerts must only contain critical or major alerts")
        return self

    def to_json_dict(self, *, include_timestamp: bool = True) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict.

        Args:
            include_timestamp: Drop metadata.evaluated_at when False, which
                makes reports for identical inputs byte-comparable.
        """
        data = self.model_dump(mode="json")
        if not include_timestamp:
            data["metadata"].pop("evaluated_at", None)
        return data
