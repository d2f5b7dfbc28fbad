"""WebSocket ticker server package.

Re-exports the server, session and signal types used by the runner.
"""

from wsticker.servers.ticker.context import ContextCanceledError, RequestContext
from wsticker.servers.ticker.models import CLOSE_TIMEOUT_SECONDS, SessionOutcome
from wsticker.servers.ticker.server import TickerServer
from wsticker.servers.ticker.session import TickerSession

__all__ = [
    "CLOSE_TIMEOUT_SECONDS",
    "ContextCanceledError",
    "RequestContext",
    "SessionOutcome",
    "TickerServer",
    "TickerSession",
]
