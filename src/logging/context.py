# src/logging/context.py — v2
"""Contextual logging support — attach run_id, collection and file to log records.

Values live in contextvars so each asyncio task embedding a file carries
its own file context without leaking into sibling tasks.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_collection: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "collection", default=None
)
_file_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "file_id", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    run_id: str | None = None
    collection: str | None = None
    file_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        run_id=_run_id.get(),
        collection=_collection.get(),
        file_id=_file_id.get(),
    )


def set_run_context(run_id: str) -> None:
    """Set run-level context (called once per matching run)."""
    _run_id.set(run_id)


def set_collection_context(collection: str | None) -> None:
    """Set the collection being embedded ("base" or "join")."""
    _collection.set(collection)


def set_file_context(file_id: str | None) -> None:
    """Set file-level context (called per embedding task)."""
    _file_id.set(file_id)


def clear_context() -> None:
    """Reset all context variables."""
    _run_id.set(None)
    _collection.set(None)
    _file_id.set(None)
