"""
Process-wide shutdown signal.

A write-once broadcast: once fired it stays fired, and every waiter sees
it, not just the first one to look.
"""

import asyncio
import logging
import signal

logger = logging.getLogger(__name__)


class ShutdownSignal:
    """Write-once broadcast shared by reference across all connection tasks."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def fired(self) -> bool:
        return self._event.is_set()

    def fire(self) -> None:
        """Fire the signal. Firing again has no effect."""
        if self._event.is_set():
            return
        logger.debug("Shutdown signal fired")
        self._event.set()

    async def wait(self) -> None:
        """Block until the signal has fired; returns immediately afterwards."""
        await self._event.wait()

    def install_signal_handlers(
        self, signals: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)
    ) -> None:
        """Fire on OS interrupt. Must be called from inside the running loop."""
        loop = asyncio.get_running_loop()
        for sig in signals:
            loop.add_signal_handler(sig, self.fire)
