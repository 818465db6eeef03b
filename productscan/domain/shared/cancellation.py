"""Cooperative cancellation signal shared by a lookup and its fetcher."""

from __future__ import annotations

from typing import Callable

from productscan.domain.shared.errors import LookupCancelledError


class CancellationToken:
    """
    One-way cancellation flag.

    The pipeline cancels the token when a newer scan supersedes the
    lookup; fetchers poll it around their suspension points.

    Example:
        >>> token = CancellationToken()
        >>> token.cancel()
        >>> assert token.is_cancelled
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Mark as cancelled and fire registered callbacks once."""
        if self._cancelled:
            return
        self._cancelled = True
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """Register a callback; runs immediately if already cancelled."""
        if self._cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def raise_if_cancelled(self) -> None:
        """
        Raises:
            LookupCancelledError: If the token was cancelled
        """
        if self._cancelled:
            raise LookupCancelledError("Lookup cancelled")
