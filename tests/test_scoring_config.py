"""Tests for scoring configuration loaded from the environment."""

from __future__ import annotations

import pytest

from torp.scoring.config import (
    DEFAULT_AXIS_WORKERS,
    DEFAULT_ML_TIMEOUT_SECONDS,
    ENV_AXIS_WORKERS,
    ENV_DEFAULT_REGION,
    ENV_ML_ENABLED,
    ENV_ML_ENDPOINT_URL,
    ENV_ML_TIMEOUT_SECONDS,
    ScoringConfig,
    ScoringConfigError,
    load_scoring_config,
)
from torp.scoring.context import DEFAULT_REGION


class TestDefaults:
    """Unset variables fall back to defaults."""

    def test_defaults(self) -> None:
        config = load_scoring_config()
        assert config.ml_enabled is True
        assert config.ml_timeout_seconds == DEFAULT_ML_TIMEOUT_SECONDS
        assert config.ml_endpoint_url is None
        assert config.axis_workers == DEFAULT_AXIS_WORKERS
        assert config.default_region == DEFAULT_REGION

    def test_blank_values_treated_as_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_ML_ENDPOINT_URL, "   ")
        monkeypatch.setenv(ENV_AXIS_WORKERS, "")
        config = load_scoring_config()
        assert config.ml_endpoint_url is None
        assert config.axis_workers == DEFAULT_AXIS_WORKERS


class TestOverrides:
    """Valid values are parsed."""

    @pytest.mark.parametrize("raw", ["0", "false", "NO", "off"])
    def test_ml_disabled(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv(ENV_ML_ENABLED, raw)
        assert load_scoring_config().ml_enabled is False

    def test_all_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_ML_TIMEOUT_SECONDS, "0.5")
        monkeypatch.setenv(ENV_ML_ENDPOINT_URL, "http://models.internal/predict")
        monkeypatch.setenv(ENV_AXIS_WORKERS, "4")
        monkeypatch.setenv(ENV_DEFAULT_REGION, "BRETAGNE")
        config = load_scoring_config()
        assert config.ml_timeout_seconds == pytest.approx(0.5)
        assert config.ml_endpoint_url == "http://models.internal/predict"
        assert config.axis_workers == 4
        assert config.default_region == "BRETAGNE"


class TestInvalidValues:
    """Invalid values raise ScoringConfigError naming the variable."""

    def test_invalid_flag(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_ML_ENABLED, "maybe")
        with pytest.raises(ScoringConfigError, match=ENV_ML_ENABLED):
            load_scoring_config()

    @pytest.mark.parametrize("raw", ["abc", "0", "-1"])
    def test_invalid_timeout(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv(ENV_ML_TIMEOUT_SECONDS, raw)
        with pytest.raises(ScoringConfigError, match=ENV_ML_TIMEOUT_SECONDS):
            load_scoring_config()

    @pytest.mark.parametrize("raw", ["two", "0", "1.5", "10"])
    def test_invalid_workers(self, monkeypatch: pytest.MonkeyPatch, raw: str) -> None:
        monkeypatch.setenv(ENV_AXIS_WORKERS, raw)
        with pytest.raises(ScoringConfigError, match=ENV_AXIS_WORKERS):
            load_scoring_config()

    def test_direct_construction_validates(self) -> None:
        with pytest.raises(ScoringConfigError):
            ScoringConfig(ml_timeout_seconds=0)
        with pytest.raises(ScoringConfigError):
            ScoringConfig(default_region="")

    def test_config_is_frozen(self) -> None:
        config = ScoringConfig()
        with pytest.raises(AttributeError):
            config.axis_workers = 3  # type: ignore[misc]
