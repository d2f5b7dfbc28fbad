"""
WebSocket ticker server.

Accepts upgrade requests on a single configured route and hands each
upgraded connection to its own TickerSession. Requests for any other path
get a 404 and are never upgraded.
"""

import asyncio
import http
import logging
from typing import Any

from websockets.asyncio.server import Server, ServerConnection, serve
from websockets.http11 import Request, Response

from wsticker.config.app import TickerConfig
from wsticker.servers.ticker.context import ContextCanceledError, RequestContext
from wsticker.servers.ticker.models import CLOSE_TIMEOUT_SECONDS
from wsticker.servers.ticker.routing import RouteMixin
from wsticker.servers.ticker.session import TickerSession
from wsticker.shutdown import ShutdownSignal
from wsticker.utils.logging import ContextLogger

logger = logging.getLogger(__name__)


class TickerServer(RouteMixin):
    """
    WebSocket server pushing periodic ticks to every connected peer.

    Shutdown follows config.shutdown_policy:
    - broadcast: the shared ShutdownSignal ends every session with a normal closure
    - request: each session ends when its own RequestContext is canceled
      (peer disconnect or server stop); no close frame is sent

    Example:
        ```python
        config = TickerConfig(route="/ticker", interval=1.0, port=9001)

        async with TickerServer(config) as server:
            await server.serve_forever()
        ```
    """

    def __init__(self, config: TickerConfig, shutdown: ShutdownSignal | None = None):
        """
        Initialize ticker server.

        Args:
            config: Server configuration
            shutdown: Process-wide shutdown signal. A private one is created if
                      omitted so stop() can still end broadcast-policy sessions.
        """
        self.config = config
        self.route = config.route
        self.shutdown = shutdown or ShutdownSignal()

        # Active sessions: {websocket: request context}
        self.sessions: dict[Any, RequestContext] = {}

        self._server: Server | None = None

    async def __aenter__(self) -> "TickerServer":
        """Async context manager entry."""
        await self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.stop()

    @property
    def port(self) -> int | None:
        """Port actually bound (differs from config.port when that is 0)."""
        if self._server is None:
            return None
        for sock in self._server.sockets:
            return int(sock.getsockname()[1])
        return None

    def _request_logger(self, request: Request) -> ContextLogger:
        # The WebSocket opening handshake is always a GET
        return ContextLogger(logger).bind(method="GET", uri=request.path)

    async def _process_request(
        self, connection: ServerConnection, request: Request
    ) -> Response | None:
        """
        Log the request and enforce the route before the handshake.

        Returns:
            None to continue with the upgrade, a 404 Response otherwise
        """
        request_logger = self._request_logger(request)
        request_logger.info("Received request")
        if request_logger.isEnabledFor(logging.DEBUG):
            headers = {name: value for name, value in request.headers.raw_items()}
            request_logger.debug(f"Request headers: {headers}")

        if not self.route_matches(request.path):
            request_logger.warning(f"Invalid route: {request.path}")
            return connection.respond(http.HTTPStatus.NOT_FOUND, "404 page not found\n")

        # Thread the request logger through to the connection handler
        connection.request_logger = request_logger  # type: ignore[attr-defined]
        return None

    async def _process_response(
        self, connection: ServerConnection, request: Request, response: Response
    ) -> Response | None:
        """Log routed requests whose handshake did not end in an upgrade."""
        request_logger = getattr(connection, "request_logger", None)
        if request_logger is None:
            return None
        if response.status_code != http.HTTPStatus.SWITCHING_PROTOCOLS:
            request_logger.warning(
                f"Failed to upgrade connection: {response.status_code} {response.reason_phrase}"
            )
        return None

    async def _watch_peer(self, websocket: Any, context: RequestContext) -> None:
        await websocket.wait_closed()
        context.cancel(ContextCanceledError("connection closed by peer"))

    async def _handle_connection(self, websocket: Any) -> None:
        """
        Run the send loop for an upgraded connection.

        Args:
            websocket: Connected WebSocket client
        """
        request_logger = getattr(websocket, "request_logger", None) or ContextLogger(logger)
        context = RequestContext()
        self.sessions[websocket] = context

        broadcast = self.config.shutdown_policy == "broadcast"
        session = TickerSession(
            websocket,
            request_logger,
            self.config.interval,
            shutdown=self.shutdown if broadcast else None,
            context=None if broadcast else context,
        )

        watcher = None if broadcast else asyncio.create_task(self._watch_peer(websocket, context))
        try:
            outcome = await session.run()
            request_logger.debug(
                f"Session ended: {outcome.value} after {session.ticks_sent} tick(s)"
            )
        finally:
            if watcher is not None:
                watcher.cancel()
            self.sessions.pop(websocket, None)

    async def start(self) -> None:
        """
        Start the listener.

        Does not block - use serve_forever() or context manager.

        Raises:
            OSError: If the listener cannot bind
        """
        if self._server is not None:
            logger.warning("Ticker server already started")
            return

        self._server = await serve(
            self._handle_connection,
            host=self.config.host,
            port=self.config.port,
            process_request=self._process_request,
            process_response=self._process_response,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
            close_timeout=CLOSE_TIMEOUT_SECONDS,
        )

        logger.debug(f"Ticker server started on ws://{self.config.host}:{self.port}{self.route}")

    async def stop(self) -> None:
        """
        End every session according to the shutdown policy, then close the listener.
        """
        if self._server is None:
            logger.warning("Ticker server not started")
            return

        logger.debug("Stopping ticker server...")

        if self.config.shutdown_policy == "broadcast":
            self.shutdown.fire()
        else:
            for context in list(self.sessions.values()):
                context.cancel(ContextCanceledError("server shutting down"))

        # Sessions close their own connections; wait for the handlers to return
        self._server.close(close_connections=False)
        await self._server.wait_closed()

        self._server = None
        logger.debug("Ticker server stopped")

    async def serve_forever(self) -> None:
        """
        Run server until cancelled or the shutdown signal fires.
        """
        if self._server is None:
            raise RuntimeError("Server not started. Call start() first.")

        try:
            await self.shutdown.wait()
        except asyncio.CancelledError:
            logger.debug("Server cancelled, shutting down...")
            await self.stop()
            raise
        await self.stop()

    def get_session_count(self) -> int:
        """
        Get number of active sessions.

        Returns:
            Count of connections currently in their send loop
        """
        return len(self.sessions)
