"""
Per-connection send loop.

A TickerSession owns one upgraded connection. It writes a tick message
every interval until one of three things happens:

- a write fails (peer gone, transport error)
- the process-wide shutdown signal fires (normal closure is attempted)
- the connection's request context is canceled

Whichever trigger is reported first wins; there is no priority between
triggers that become ready together. The connection is released on every
exit path.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from typing import Any

from websockets.exceptions import ConnectionClosed

from wsticker.servers.ticker import models
from wsticker.servers.ticker.context import RequestContext
from wsticker.servers.ticker.models import CLOSE_NORMAL, SessionOutcome, TickerClient
from wsticker.servers.ticker.ticker import Clock, Ticker, format_tick_message
from wsticker.shutdown import ShutdownSignal
from wsticker.utils.logging import ContextLogger


class TickerSession:
    """Send loop for a single connection."""

    def __init__(
        self,
        websocket: TickerClient,
        logger: ContextLogger,
        interval: float,
        shutdown: ShutdownSignal | None = None,
        context: RequestContext | None = None,
        clock: Clock | None = None,
    ):
        """
        Args:
            websocket: Upgraded connection, owned exclusively by this session
            logger: Request logger carrying method/uri fields
            interval: Seconds between ticks
            shutdown: Process-wide signal to observe (broadcast policy)
            context: Per-request context to observe (request policy)
            clock: Timestamp source for tick messages
        """
        self.websocket = websocket
        self.logger = logger
        self.interval = interval
        self.shutdown = shutdown
        self.context = context
        self.clock = clock
        self.ticks_sent = 0

    async def run(self) -> SessionOutcome:
        """Run the loop until a terminal trigger fires. Always releases the connection."""
        try:
            ticker = Ticker(self.interval, clock=self.clock)
            while True:
                event, result = await self._next_event(ticker)

                if event == "tick":
                    self.logger.debug("Ticking")
                    if not await self._write_tick(result):
                        return SessionOutcome.WRITE_FAILED

                elif event == "shutdown":
                    self.logger.info("Shutting down")
                    await self._close_normal()
                    return SessionOutcome.SHUTDOWN

                else:
                    cause = self.context.cause if self.context else None
                    self.logger.warning(f"Request context canceled: {cause}")
                    return SessionOutcome.CANCELED
        finally:
            self._release()

    async def _next_event(self, ticker: Ticker) -> tuple[str, Any]:
        """Wait for the first of tick / shutdown / cancellation."""
        sources: dict[str, Awaitable[Any]] = {"tick": ticker.wait()}
        if self.shutdown is not None:
            sources["shutdown"] = self.shutdown.wait()
        if self.context is not None:
            sources["canceled"] = self.context.wait()

        tasks = {asyncio.ensure_future(aw): name for name, aw in sources.items()}
        try:
            done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        winner = next(iter(done))
        return tasks[winner], winner.result()

    async def _write_tick(self, tick: Any) -> bool:
        """Send one tick message. Returns False if the connection is unusable."""
        message = format_tick_message(tick)
        try:
            await self.websocket.send(message)
        except (ConnectionClosed, OSError) as e:
            self.logger.warning(f"Failed to write message: {e}")
            return False
        self.ticks_sent += 1
        return True

    async def _close_normal(self) -> None:
        """Attempt a normal-closure handshake within the close deadline."""
        try:
            await asyncio.wait_for(
                self.websocket.close(code=CLOSE_NORMAL),
                timeout=models.CLOSE_TIMEOUT_SECONDS,
            )
        except TimeoutError:
            self.logger.warning("Failed to write close message: timed out")
        except (ConnectionClosed, OSError) as e:
            self.logger.warning(f"Failed to write close message: {e}")

    def _release(self) -> None:
        """Drop the underlying transport without a close frame."""
        transport = getattr(self.websocket, "transport", None)
        if transport is not None and not transport.is_closing():
            transport.abort()
