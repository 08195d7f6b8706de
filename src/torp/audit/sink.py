"""Audit sinks for scoring events.

Every scoring call leaves an append-only trail: started, completed or
failed, plus an event whenever the ML blend falls back to the base score.
Sinks fail closed: an event that cannot be written raises AuditSinkError.
"""

from __future__ import annotations

import json
import os
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

AUDIT_LOG_PATH_ENV = "TORP_AUDIT_LOG_PATH"
DEFAULT_AUDIT_LOG_PATH = "./var/audit/scoring_events.jsonl"


class AuditSinkError(Exception):
    """Raised when an audit event cannot be recorded."""


@runtime_checkable
class AuditSink(Protocol):
    """Append-only destination for audit events."""

    def emit(self, event: dict[str, Any]) -> None:
        """Record one event.

        Raises:
            AuditSinkError: If the event cannot be recorded.
        """
        ...


def _serialize(event: dict[str, Any]) -> str:
    try:
        return json.dumps(event, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise AuditSinkError(f"Failed to serialize audit event: {e}") from e


class JsonlFileAuditSink:
    """Append-only JSONL file sink.

    The path comes from the constructor, then TORP_AUDIT_LOG_PATH, then
    DEFAULT_AUDIT_LOG_PATH. Parent directories are created on first write
    and existing content is never truncated.
    """

    def __init__(self, file_path: str | Path | None = None) -> None:
        if file_path is not None:
            self._file_path = Path(file_path)
        else:
            self._file_path = Path(os.environ.get(AUDIT_LOG_PATH_ENV) or DEFAULT_AUDIT_LOG_PATH)
        self._lock = threading.Lock()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def emit(self, event: dict[str, Any]) -> None:
        """Append the event as one JSON line (sorted keys, compact separators).

        Raises:
            AuditSinkError: If serialization, directory creation or the write fails.
        """
        line = _serialize(event) + "\n"
        parent = self._file_path.parent
        try:
            parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise AuditSinkError(f"Failed to create audit log directory {parent}: {e}") from e
        try:
            with self._lock, open(self._file_path, mode="a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            raise AuditSinkError(
                f"Failed to write audit event to {self._file_path}: {e}"
            ) from e


class InMemoryAuditSink:
    """In-memory sink for tests. Events are round-tripped through JSON."""

    def __init__(self) -> None:
        self._events: list[dict[str, Any]] = []

    def emit(self, event: dict[str, Any]) -> None:
        self._events.append(json.loads(_serialize(event)))

    @property
    def events(self) -> list[dict[str, Any]]:
        return list(self._events)

    def event_types(self) -> list[str]:
        return [str(e.get("event_type")) for e in self._events]

    def clear(self) -> None:
        self._events.clear()


def get_audit_sink(file_path: str | Path | None = None) -> AuditSink | None:
    """Return the configured file sink, or None when auditing is not configured.

    An explicit path wins over the TORP_AUDIT_LOG_PATH environment variable.
    """
    if file_path:
        return JsonlFileAuditSink(file_path)
    if os.environ.get(AUDIT_LOG_PATH_ENV):
        return JsonlFileAuditSink()
    return None
