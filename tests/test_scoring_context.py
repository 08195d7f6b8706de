"""Tests for scoring context validation (fail-closed)."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from torp.scoring.context import (
    DEFAULT_REGION,
    ScoringContext,
    ScoringContextError,
    build_scoring_context,
)
from torp.scoring.models import Profile, ProjectAmount, ProjectType


def _make_payload(**overrides: object) -> dict[str, object]:
    payload: dict[str, object] = {
        "profile": "B2C",
        "projectType": "renovation",
        "projectAmount": "medium",
    }
    payload.update(overrides)
    return payload


class TestValidContext:
    """Well-formed payloads in camelCase or snake_case."""

    def test_camel_case_payload(self) -> None:
        ctx = build_scoring_context(_make_payload())
        assert ctx.profile == Profile.B2C
        assert ctx.project_type == ProjectType.RENOVATION
        assert ctx.project_amount == ProjectAmount.MEDIUM
        assert ctx.is_renovation
        assert not ctx.is_construction

    def test_snake_case_payload(self) -> None:
        ctx = build_scoring_context(
            {"profile": "B2B", "project_type": "construction", "project_amount": "high"}
        )
        assert ctx.profile == Profile.B2B
        assert ctx.is_construction

    def test_region_defaults(self) -> None:
        assert build_scoring_context(_make_payload()).region == DEFAULT_REGION

    def test_region_default_override(self) -> None:
        ctx = build_scoring_context(_make_payload(), default_region="BRETAGNE")
        assert ctx.region == "BRETAGNE"

    def test_explicit_region_kept(self) -> None:
        ctx = build_scoring_context(_make_payload(region="OCCITANIE"), default_region="BRETAGNE")
        assert ctx.region == "OCCITANIE"

    def test_stated_need_aliases(self) -> None:
        need = {"clientNeed": "fuite", "clientRequest": "réparation fuite"}
        for key in ("statedNeed", "stated_need", "coherenceData"):
            ctx = build_scoring_context(_make_payload(**{key: need}))
            assert ctx.stated_need is not None
            assert ctx.stated_need.client_request == "réparation fuite"

    def test_context_instance_passes_through(self) -> None:
        ctx = build_scoring_context(_make_payload())
        assert build_scoring_context(ctx) is ctx


class TestMalformedContext:
    """Malformed contexts raise ScoringContextError."""

    def test_unknown_profile(self) -> None:
        with pytest.raises(ScoringContextError, match="profile"):
            build_scoring_context(_make_payload(profile="B2G"))

    def test_missing_project_type(self) -> None:
        payload = _make_payload()
        del payload["projectType"]
        with pytest.raises(ScoringContextError, match="project"):
            build_scoring_context(payload)

    def test_unknown_project_amount(self) -> None:
        with pytest.raises(ScoringContextError):
            build_scoring_context(_make_payload(projectAmount="huge"))

    def test_unknown_field_rejected(self) -> None:
        with pytest.raises(ScoringContextError):
            build_scoring_context(_make_payload(tenant="acme"))

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(ScoringContextError, match="mapping"):
            build_scoring_context(["B2C", "renovation"])  # type: ignore[arg-type]

    def test_context_is_frozen(self) -> None:
        ctx = build_scoring_context(_make_payload())
        assert isinstance(ctx, ScoringContext)
        with pytest.raises(ValidationError):
            ctx.region = "BRETAGNE"  # type: ignore[misc]
