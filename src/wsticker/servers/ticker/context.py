"""Per-request cancellation context."""

from __future__ import annotations

import asyncio


class ContextCanceledError(Exception):
    """Cause recorded when a request context is canceled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class RequestContext:
    """
    Cancellation token scoped to a single upgraded connection.

    Only the connection it was created for observes it; canceling one
    context never affects sibling connections.
    """

    def __init__(self) -> None:
        self._done = asyncio.Event()
        self._cause: BaseException | None = None

    @property
    def done(self) -> bool:
        return self._done.is_set()

    @property
    def cause(self) -> BaseException | None:
        """Why the context was canceled, or None while it is still live."""
        return self._cause

    def cancel(self, cause: BaseException | str | None = None) -> None:
        """Cancel the context. The first cause is kept; later calls are no-ops."""
        if self._done.is_set():
            return
        if cause is None:
            cause = ContextCanceledError()
        elif isinstance(cause, str):
            cause = ContextCanceledError(cause)
        self._cause = cause
        self._done.set()

    async def wait(self) -> None:
        await self._done.wait()
