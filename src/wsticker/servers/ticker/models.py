"""Ticker connection protocol, outcomes and constants."""

from __future__ import annotations

from enum import Enum
from typing import Any, Protocol

# Deadline for the normal-closure handshake on server shutdown
CLOSE_TIMEOUT_SECONDS = 1.0

# RFC 6455 status code for a graceful close
CLOSE_NORMAL = 1000


class SessionOutcome(str, Enum):
    """Which of the three exit triggers ended a send loop."""

    WRITE_FAILED = "write_failed"
    SHUTDOWN = "shutdown"
    CANCELED = "canceled"


class TickerClient(Protocol):
    """The parts of a websockets connection the send loop relies on."""

    remote_address: Any
    transport: Any

    async def send(self, message: str) -> None: ...
    async def close(self, code: int = 1000, reason: str = "") -> None: ...
    async def wait_closed(self) -> None: ...
