"""Scoring context: caller profile and project framing for one request.

Malformed contexts are rejected before any axis runs, since profile
weighting is undefined without a valid profile.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from torp.scoring.models import Profile, ProjectAmount, ProjectType

DEFAULT_REGION = "ILE_DE_FRANCE"


class ScoringContextError(Exception):
    """Raised when a scoring context is malformed (fatal, fail-closed)."""


class NeedConstraints(BaseModel):
    model_config = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True, alias_generator=to_camel
    )

    max_budget: float | None = Field(default=None, ge=0.0, description="Budget ceiling")
    desired_deadline: str | None = Field(default=None, description="Desired completion")
    other: str | None = Field(default=None, description="Other free-text constraints")


class StatedNeed(BaseModel):
    """What the client asked for, captured before the quote was issued.

    Required by the coherence axis; without it that axis does not score.
    """

    model_config = ConfigDict(
        frozen=True, extra="ignore", populate_by_name=True, alias_generator=to_camel
    )

    client_need: str = Field(default="", description="Underlying problem to solve")
    client_request: str = Field(default="", description="Work explicitly requested")
    need_type: str | None = Field(
        default=None, description="urgence, renovation, amelioration, construction, maintenance"
    )
    constraints: NeedConstraints | None = None


class ScoringContext(BaseModel):
    """Framing of one scoring request."""

    model_config = ConfigDict(
        frozen=True, extra="forbid", populate_by_name=True, alias_generator=to_camel
    )

    profile: Profile = Field(..., description="B2C or B2B caller profile")
    project_type: ProjectType
    project_amount: ProjectAmount = Field(..., description="Project amount band")
    region: str = Field(default=DEFAULT_REGION, min_length=1)
    trade_type: str | None = None
    stated_need: StatedNeed | None = Field(
        default=None,
        validation_alias=AliasChoices("statedNeed", "stated_need", "coherenceData"),
    )

    @property
    def is_renovation(self) -> bool:
        return self.project_type == ProjectType.RENOVATION

    @property
    def is_construction(self) -> bool:
        return self.project_type == ProjectType.CONSTRUCTION


def build_scoring_context(
    data: ScoringContext | dict[str, Any],
    *,
    default_region: str = DEFAULT_REGION,
) -> ScoringContext:
    """Validate a raw context payload. Fail-closed.

    Args:
        data: A ScoringContext or a mapping in snake_case or camelCase.
        default_region: Region applied when the payload omits one.

    Returns:
        Validated ScoringContext.

    Raises:
        ScoringContextError: If the profile is unknown or a required field
            is missing or invalid.
    """
    if isinstance(data, ScoringContext):
        return data
    if not isinstance(data, dict):
        raise ScoringContextError(
            f"Scoring context must be a mapping, got {type(data).__name__}"
        )
    payload = dict(data)
    if not payload.get("region"):
        payload["region"] = default_region
    try:
        return ScoringContext.model_validate(payload)
    except ValidationError as exc:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise ScoringContextError(f"Invalid scoring context: {details}") from exc
