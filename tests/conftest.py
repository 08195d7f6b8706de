"""Pytest configuration and fixtures for TORP tests.

Scoring configuration is read from the environment, so every test starts
from a clean TORP_* environment.
"""

from __future__ import annotations

import pytest

from torp.audit.sink import AUDIT_LOG_PATH_ENV
from torp.scoring.config import (
    ENV_AXIS_WORKERS,
    ENV_DEFAULT_REGION,
    ENV_ML_ENABLED,
    ENV_ML_ENDPOINT_URL,
    ENV_ML_TIMEOUT_SECONDS,
)

_TORP_ENV_VARS = (
    ENV_ML_ENABLED,
    ENV_ML_TIMEOUT_SECONDS,
    ENV_ML_ENDPOINT_URL,
    ENV_AXIS_WORKERS,
    ENV_DEFAULT_REGION,
    AUDIT_LOG_PATH_ENV,
)


@pytest.fixture(autouse=True)
def clean_torp_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Remove TORP_* variables so defaults apply unless a test sets them."""
    for name in _TORP_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
