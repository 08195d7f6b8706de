"""Axis configurations of the scoring scheme.

Static, versioned constants: each axis declares its point budget and its
per-profile weights. Budgets must total SCHEME_MAX_POINTS (1400) and weights
must lie in [0, 1]. Reports are normalized to GLOBAL_MAX_POINTS (1350)
whatever the budget total.

Fail-closed: unknown axis raises AxisConfigNotFoundError.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from torp.scoring.models import ALL_AXES, AxisId, Profile

SCORING_VERSION = "2.2.0"
SCHEME_MAX_POINTS = 1400

_AXIS_IDS = frozenset(a.value for a in ALL_AXES)


class AxisConfigNotFoundError(Exception):
    """Raised when no configuration exists for the requested axis."""


class AxisConfig(BaseModel):
    """Budget and profile weights of one axis."""

    model_config = ConfigDict(frozen=True)

    id: AxisId = Field(..., description="Axis identifier")
    name: str = Field(..., min_length=1, description="Human-readable axis name")
    weight: float = Field(..., ge=0.0, le=1.0, description="Reference weight")
    weight_b2c: float = Field(..., ge=0.0, le=1.0, description="Weight for B2C callers")
    weight_b2b: float = Field(..., ge=0.0, le=1.0, description="Weight for B2B callers")
    max_points: int = Field(..., gt=0, description="Axis point budget")

    def weight_for(self, profile: Profile) -> float:
        """Effective weight for a caller profile."""
        if profile == Profile.B2B:
            return self.weight_b2b
        return self.weight_b2c


def _make_config(
    axis_id: AxisId,
    name: str,
    weight: float,
    weight_b2c: float,
    weight_b2b: float,
    max_points: int,
) -> AxisConfig:
    return AxisConfig(
        id=axis_id,
        name=name,
        weight=weight,
        weight_b2c=weight_b2c,
        weight_b2b=weight_b2b,
        max_points=max_points,
    )


_AXIS_CONFIGS: dict[AxisId, AxisConfig] = {
    AxisId.COMPLIANCE: _make_config(
        AxisId.COMPLIANCE, "Regulatory & technical compliance", 0.29, 0.35, 0.26, 350
    ),
    AxisId.PRICE: _make_config(AxisId.PRICE, "Price & market position", 0.21, 0.18, 0.28, 250),
    AxisId.QUALITY: _make_config(
        AxisId.QUALITY, "Company quality & reputation", 0.17, 0.22, 0.15, 200
    ),
    AxisId.FEASIBILITY: _make_config(
        AxisId.FEASIBILITY, "Technical feasibility", 0.12, 0.08, 0.18, 150
    ),
    AxisId.TRANSPARENCY: _make_config(
        AxisId.TRANSPARENCY, "Transparency & communication", 0.08, 0.15, 0.05, 100
    ),
    AxisId.GUARANTEES: _make_config(
        AxisId.GUARANTEES, "Guarantees & insurance", 0.07, 0.10, 0.05, 80
    ),
    AxisId.INNOVATION: _make_config(
        AxisId.INNOVATION, "Innovation & sustainability", 0.04, 0.02, 0.08, 50
    ),
    AxisId.SCHEDULE: _make_config(AxisId.SCHEDULE, "Schedule & deadlines", 0.06, 0.05, 0.10, 70),
    AxisId.COHERENCE: _make_config(
        AxisId.COHERENCE, "Request-quote coherence", 0.11, 0.12, 0.08, 150
    ),
}


def _check_scheme(configs: dict[AxisId, AxisConfig]) -> None:
    """Fail closed at import: every axis configured, budgets total SCHEME_MAX_POINTS."""
    missing = [axis.value for axis in ALL_AXES if axis not in configs]
    if missing:
        raise ValueError(f"Axis configs missing axes: {missing}")
    total = sum(cfg.max_points for cfg in configs.values())
    if total != SCHEME_MAX_POINTS:
        raise ValueError(f"Axis budgets must total {SCHEME_MAX_POINTS} (got {total})")


_check_scheme(_AXIS_CONFIGS)


def get_axis_config(axis_id: AxisId | str) -> AxisConfig:
    """Retrieve the configuration of an axis. Fail-closed.

    Args:
        axis_id: Axis identifier.

    Returns:
        AxisConfig with budget and weights.

    Raises:
        AxisConfigNotFoundError: If the axis is unknown.
    """
    config = _AXIS_CONFIGS.get(AxisId(axis_id)) if axis_id in _AXIS_IDS else None
    if config is None:
        raise AxisConfigNotFoundError(f"No axis config defined for axis: {axis_id}")
    return config


def list_axis_configs() -> list[AxisConfig]:
    """Return all axis configs in evaluation order."""
    return [_AXIS_CONFIGS[axis] for axis in ALL_AXES]


def total_weighted_max(profile: Profile) -> float:
    """Sum of profile-weighted axis budgets."""
    return sum(cfg.max_points * cfg.weight_for(profile) for cfg in list_axis_configs())
