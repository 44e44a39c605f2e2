"""
Query contexts.

A ``QueryContext`` is passed explicitly to the context-aware operations. It
carries three things:

- a cancellation flag, shared with every context derived from it;
- an optional deadline on the ``time.monotonic()`` clock;
- request-scoped metadata (user id, job name, ...) that is snapshotted into
  the error annotation when a query fails.

Contexts are immutable apart from cancellation: ``with_metadata``,
``with_timeout`` and ``with_deadline`` return new children. Cancelling a
parent cancels its children; cancelling a child leaves the parent alone.

The annotation layer only forwards a context. Whether a running statement
notices cancellation or a deadline is up to the driver that receives it.
"""

from __future__ import annotations

import threading
import time
from types import MappingProxyType
from typing import Any, Mapping, Optional

from ..exceptions.base import ContextCancelledError, DeadlineExceededError, ContextError
from .logging.filters import get_request_id


class QueryContext:
    __slots__ = ("_parent", "_metadata", "_deadline", "_cancelled")

    def __init__(
        self,
        *,
        metadata: Mapping[str, Any] | None = None,
        deadline: float | None = None,
        parent: Optional["QueryContext"] = None,
    ):
        self._parent = parent
        self._metadata = MappingProxyType(dict(metadata or {}))
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)
        self._deadline = deadline
        self._cancelled = threading.Event()

    @classmethod
    def background(cls) -> "QueryContext":
        """An empty context: no metadata, no deadline, never cancelled unless asked."""
        return cls()

    # --- derivation ---
    def with_metadata(self, **values: Any) -> "QueryContext":
        return QueryContext(metadata=values, parent=self)

    def with_deadline(self, deadline: float) -> "QueryContext":
        """Derive a context that expires at ``deadline`` (``time.monotonic()`` seconds)."""
        return QueryContext(deadline=deadline, parent=self)

    def with_timeout(self, seconds: float) -> "QueryContext":
        return self.with_deadline(time.monotonic() + seconds)

    # --- state ---
    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        return self._parent is not None and self._parent.cancelled

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def remaining(self) -> float | None:
        """Seconds left until the deadline (never negative), or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def err(self) -> ContextError | None:
        """The reason this context is finished, or None while it is still live."""
        if self.cancelled:
            return ContextCancelledError()
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None

    @property
    def done(self) -> bool:
        return self.err() is not None

    def raise_if_done(self) -> None:
        err = self.err()
        if err is not None:
            raise err

    # --- metadata ---
    @property
    def metadata(self) -> Mapping[str, Any]:
        """Metadata of this context and its ancestors; the nearest value wins."""
        if self._parent is None:
            return self._metadata
        merged = dict(self._parent.metadata)
        merged.update(self._metadata)
        return MappingProxyType(merged)

    def snapshot(self) -> dict[str, Any]:
        """
        Plain copy of the metadata for attaching to an error.

        The logging request id is included under ``request_id`` when one is
        set for the current execution context and the metadata does not
        already define that key.
        """
        snap = dict(self.metadata)
        request_id = get_request_id()
        if request_id is not None:
            snap.setdefault("request_id", request_id)
        return snap

    def __repr__(self) -> str:
        return (
            f"QueryContext(metadata={dict(self.metadata)!r}, "
            f"deadline={self._deadline!r}, cancelled={self.cancelled})"
        )


__all__ = ["QueryContext"]
