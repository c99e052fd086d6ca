"""Cooperative cancellation for long-running batch work."""

from __future__ import annotations

from catalog_spine.core.errors import OperationCancelledError


class CancellationToken:
    """Checked by batch loops between chunks.

    Cancelling stops further progress; already-committed chunks stay committed.
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason: str | None = None

    @property
    def is_cancellation_requested(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str | None = None) -> None:
        self._cancelled = True
        self._reason = reason

    def throw_if_cancellation_requested(self) -> None:
        if self._cancelled:
            raise OperationCancelledError(self._reason or "Operation was cancelled")

    @classmethod
    def none(cls) -> CancellationToken:
        """A token nobody will cancel."""
        return cls()


__all__ = ["CancellationToken"]
