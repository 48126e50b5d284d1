"""
=============================================================================
CORS MIDDLEWARE
=============================================================================

Adds Cross-Origin Resource Sharing headers to every response so browser
clients on other origins may read it.

=============================================================================
HEADERS ADDED
=============================================================================

    ┌──────────────────────────────────┬──────────────────────────────────┐
    │ Access-Control-Allow-Origin      │ the configured origin ("*" by    │
    │                                  │ default), or the matching Origin │
    │                                  │ when several are configured      │
    ├──────────────────────────────────┼──────────────────────────────────┤
    │ Vary                             │ "Origin", only when several      │
    │                                  │ origins are configured           │
    ├──────────────────────────────────┼──────────────────────────────────┤
    │ Access-Control-Allow-Methods     │ GET, POST, PUT, DELETE, OPTIONS  │
    └──────────────────────────────────┴──────────────────────────────────┘

The headers are set AFTER the rest of the chain runs, so they land on
every response that passes through, 404s included. They overwrite any
value an inner handler set for the same names.

=============================================================================
PREFLIGHT
=============================================================================

Browsers send ``OPTIONS`` before "non-simple" cross-origin requests. By
default OPTIONS requests are routed like any other (register an OPTIONS
handler, or get a 404 with CORS headers). With ``handle_preflight=True``
the middleware answers every OPTIONS request itself:

    OPTIONS /users
        → 204, Allow-Origin, Allow-Methods,
          Access-Control-Allow-Headers, Access-Control-Max-Age

=============================================================================
"""

from typing import Dict, List, Optional

from .base import Middleware, NextHandler
from ..http.models import Method, Request, Response
from ..http.status_codes import HTTPStatus


DEFAULT_ALLOW_METHODS = [m.value for m in Method]
DEFAULT_ALLOW_HEADERS = ["Content-Type", "Authorization", "X-Requested-With"]

class CORSMiddleware(Middleware):
    """
    CORS middleware.

    Usage:
        app.use(CORSMiddleware())                                  # any origin
        app.use(CORSMiddleware(["https://myapp.com"]))             # one origin
        app.use(CORSMiddleware(["https://a.com", "https://b.com"]))  # echo matching Origin
        app.use(CORSMiddleware(handle_preflight=True, max_age=600))
    """

    def __init__(
        self,
        allowed_origins: Optional[List[str]] = None,
        allow_methods: Optional[List[str]] = None,
        allow_headers: Optional[List[str]] = None,
        handle_preflight: bool = False,
        max_age: int = 86400,
    ):
        """
        Args:
            allowed_origins: Origins to advertise, ["*"] if omitted
            allow_methods: Methods to advertise
            allow_headers: Request headers allowed on preflight
            handle_preflight: Answer OPTIONS requests with 204 directly
            max_age: Seconds a browser may cache a preflight answer
        """
        self.allowed_origins = list(allowed_origins) if allowed_origins is not None else ["*"]
        self.allow_methods = list(allow_methods) if allow_methods is not None else list(DEFAULT_ALLOW_METHODS)
        self.allow_headers = list(allow_headers) if allow_headers is not None else list(DEFAULT_ALLOW_HEADERS)
        self.handle_preflight = handle_preflight
        self.max_age = max_age

    @property
    def echoes_origin(self) -> bool:
        """True when the allowed origin depends on the request's Origin."""
        return len(self.allowed_origins) != 1 and "*" not in self.allowed_origins

    def process(self, request: Request, next: NextHandler) -> Response:
        origin = request.header("Origin")
        if self.handle_preflight and request.method is Method.OPTIONS:
            return self._preflight_response(origin)

        response = next(request)
        return response.with_headers(self.cors_headers(origin))

    def cors_headers(self, origin: Optional[str] = None) -> Dict[str, str]:
        """
        The headers added to every response.

        With a single configured origin (or "*") that value is sent as is.
        With several (or none), the request's Origin is echoed back when it
        is in the list and left out otherwise; ``Vary: Origin`` is added then.

        Args:
            origin: The request's Origin header, if any
        """
        headers: Dict[str, str] = {}
        if not self.echoes_origin:
            headers["Access-Control-Allow-Origin"] = "*" if "*" in self.allowed_origins else self.allowed_origins[0]
        else:
            headers["Vary"] = "Origin"
            if origin in self.allowed_origins:
                headers["Access-Control-Allow-Origin"] = origin
        headers["Access-Control-Allow-Methods"] = ", ".join(self.allow_methods)
        return headers

    def _preflight_response(self, origin: Optional[str]) -> Response:
        headers = self.cors_headers(origin)
        headers["Access-Control-Allow-Headers"] = ", ".join(self.allow_headers)
        headers["Access-Control-Max-Age"] = str(self.max_age)
        return Response(HTTPStatus.NO_CONTENT, headers=headers)
