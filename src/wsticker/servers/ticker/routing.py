"""Route matching for the ticker endpoint."""

from __future__ import annotations

from urllib.parse import unquote

from wsticker.config.app import normalize_route


def normalize_path(request_target: str) -> str:
    """Reduce a request target ("/ticker/?x=1") to its comparable path ("/ticker")."""
    path = request_target.partition("?")[0]
    return normalize_route(unquote(path))


class RouteMixin:
    """Exact, case-sensitive single-route matching. Requires self.route."""

    route: str

    def route_matches(self, request_target: str) -> bool:
        """True iff the normalized request path equals the normalized route."""
        return normalize_path(request_target) == normalize_route(self.route)
