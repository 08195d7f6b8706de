"""Scoring engine configuration from environment variables.

Environment variables:
    TORP_ML_ENABLED: Blend ML predictions when a provider is wired (default: 1)
    TORP_ML_TIMEOUT_SECONDS: Upper bound for one ML call (default: 2.0)
    TORP_ML_ENDPOINT_URL: Model server URL for the HTTP provider (default: unset)
    TORP_AXIS_WORKERS: Threads used to evaluate axes, 1 = sequential (default: 1)
    TORP_DEFAULT_REGION: Region used when a request omits one (default: ILE_DE_FRANCE)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Final

from torp.scoring.context import DEFAULT_REGION

logger = logging.getLogger(__name__)

ENV_ML_ENABLED: Final[str] = "TORP_ML_ENABLED"
ENV_ML_TIMEOUT_SECONDS: Final[str] = "TORP_ML_TIMEOUT_SECONDS"
ENV_ML_ENDPOINT_URL: Final[str] = "TORP_ML_ENDPOINT_URL"
ENV_AXIS_WORKERS: Final[str] = "TORP_AXIS_WORKERS"
ENV_DEFAULT_REGION: Final[str] = "TORP_DEFAULT_REGION"

DEFAULT_ML_TIMEOUT_SECONDS: Final[float] = 2.0
DEFAULT_AXIS_WORKERS: Final[int] = 1
MAX_AXIS_WORKERS: Final[int] = 9

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class ScoringConfigError(Exception):
    """Raised when scoring configuration is invalid."""


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring engine configuration (immutable).

    Attributes:
        ml_enabled: Whether an injected ML provider is consulted.
        ml_timeout_seconds: Timeout enforced by the engine on one ML call.
        ml_endpoint_url: Model server URL, None when no remote model is used.
        axis_workers: Thread pool size for axis evaluation.
        default_region: Region applied to contexts without one.
    """

    ml_enabled: bool = True
    ml_timeout_seconds: float = DEFAULT_ML_TIMEOUT_SECONDS
    ml_endpoint_url: str | None = None
    axis_workers: int = DEFAULT_AXIS_WORKERS
    default_region: str = DEFAULT_REGION

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.ml_timeout_seconds <= 0:
            raise ScoringConfigError(
                f"{ENV_ML_TIMEOUT_SECONDS} must be a positive number, "
                f"got {self.ml_timeout_seconds}"
            )
        if not 1 <= self.axis_workers <= MAX_AXIS_WORKERS:
            raise ScoringConfigError(
                f"{ENV_AXIS_WORKERS} must be between 1 and {MAX_AXIS_WORKERS}, "
                f"got {self.axis_workers}"
            )
        if not self.default_region:
            raise ScoringConfigError(f"{ENV_DEFAULT_REGION} must not be empty")


def _read(env_var: str) -> str | None:
    raw = os.environ.get(env_var)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _parse_bool(env_var: str, default: bool) -> bool:
    raw = _read(env_var)
    if raw is None:
        return default
    lowered = raw.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ScoringConfigError(f"{env_var} must be a boolean flag, got '{raw}'")


def _parse_positive_float(env_var: str, default: float) -> float:
    raw = _read(env_var)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ScoringConfigError(f"{env_var} must be a positive number, got '{raw}'") from e
    if value <= 0:
        raise ScoringConfigError(f"{env_var} must be a positive number, got {value}")
    return value


def _parse_positive_int(env_var: str, default: int) -> int:
    raw = _read(env_var)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ScoringConfigError(f"{env_var} must be a positive integer, got '{raw}'") from e
    if value <= 0:
        raise ScoringConfigError(f"{env_var} must be a positive integer, got {value}")
    return value


def load_scoring_config() -> ScoringConfig:
    """Load scoring configuration from environment variables.

    Returns:
        ScoringConfig with validated values.

    Raises:
        ScoringConfigError: If any value is invalid.
    """
    config = ScoringConfig(
        ml_enabled=_parse_bool(ENV_ML_ENABLED, True),
        ml_timeout_seconds=_parse_positive_float(
            ENV_ML_TIMEOUT_SECONDS, DEFAULT_ML_TIMEOUT_SECONDS
        ),
        ml_endpoint_url=_read(ENV_ML_ENDPOINT_URL),
        axis_workers=_parse_positive_int(ENV_AXIS_WORKERS, DEFAULT_AXIS_WORKERS),
        default_region=_read(ENV_DEFAULT_REGION) or DEFAULT_REGION,
    )
    logger.debug(
        "Loaded scoring config: ml_enabled=%s timeout=%.2fs workers=%d",
        config.ml_enabled,
        config.ml_timeout_seconds,
        config.axis_workers,
    )
    return config
