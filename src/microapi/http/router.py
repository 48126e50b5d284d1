"""
=============================================================================
URL ROUTER
=============================================================================

Maps (path, method) to the handler that serves it.

=============================================================================
ROUTING TABLE
=============================================================================

Paths are matched EXACTLY: no parameters, no wildcards, no trailing-slash
normalization. That makes the table a plain two-level dict:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ROUTING TABLE                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   _routes                                                            │
    │   ├── "/hello"                                                       │
    │   │     └── GET    → Route(GET, "/hello", say_hello)                 │
    │   ├── "/users"                                                       │
    │   │     ├── GET    → Route(GET, "/users", list_users)                │
    │   │     └── POST   → Route(POST, "/users", create_user)              │
    │   └── "/users/"                   ← a different key than "/users"    │
    │         └── GET    → Route(GET, "/users/", list_users_slash)         │
    │                                                                      │
    │   GET  /users   → hit  → list_users(request)                         │
    │   PUT  /users   → miss → 404 {"error": "Not found"}                  │
    │   GET  /nope    → miss → 404 {"error": "Not found"}                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A miss is always 404, whether the path is unknown or only the method is.
Registering the same (path, method) again replaces the earlier route.

=============================================================================
FREEZING
=============================================================================

The table is filled at startup and only read while serving. Once the
application builds its dispatcher it calls ``freeze()``; any later
registration raises RuntimeError instead of racing with worker threads
that are reading the table.

=============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List
import logging

from .models import Method, Request, Response
from .response import not_found


logger = logging.getLogger(__name__)


# A handler takes a request and returns a response.
Handler = Callable[[Request], Response]


@dataclass(frozen=True)
class Route:
    """
    A registered route: one handler for one (path, method) pair.

    Example:
        Route(Method.GET, "/health", health_check)
    """

    method: Method
    path: str
    handler: Handler


class Router:
    """
    Exact-match request router.

    Usage:
        router = Router()
        router.register(Route(Method.GET, "/hello", say_hello))

        response = router.route(request)
    """

    def __init__(self):
        self._routes: Dict[str, Dict[Method, Route]] = {}
        self._frozen = False

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def register(self, route: Route) -> None:
        """
        Insert a route, replacing any route already at (path, method).

        Raises:
            RuntimeError: If the router has been frozen
        """
        if self._frozen:
            raise RuntimeError(
                f"Cannot register {route.method} {route.path}: routes are frozen once serving starts"
            )

        methods = self._routes.setdefault(route.path, {})
        if route.method in methods:
            logger.debug(f"Replacing route {route.method} {route.path}")
        methods[route.method] = route

    def add_route(self, method: Method, path: str, handler: Handler) -> Route:
        """Build a Route from its parts, register it and return it."""
        route = Route(method, path, handler)
        self.register(route)
        return route

    def freeze(self) -> None:
        """Reject further registrations."""
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def route(self, request: Request) -> Response:
        """
        Dispatch a request to its handler.

        The handler's response is returned unchanged and its exceptions
        propagate to the caller.

        Args:
            request: The request to route

        Returns:
            The handler's response, or 404 {"error": "Not found"} on a miss
        """
        route = self._routes.get(request.path, {}).get(request.method)
        if route is None:
            logger.debug(f"No route for {request.method} {request.path}")
            return not_found()
        return route.handler(request)

    def lookup(self, path: str, method: Method):
        """Return the Route registered at (path, method), or None."""
        return self._routes.get(path, {}).get(method)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    def routes(self) -> List[Route]:
        """All registered routes, grouped by path in registration order."""
        return [route for methods in self._routes.values() for route in methods.values()]

    def __iter__(self) -> Iterator[Route]:
        return iter(self.routes())

    def __len__(self) -> int:
        return sum(len(methods) for methods in self._routes.values())

    def print_routes(self) -> None:
        """
        Print the routing table (useful for debugging).

        Example output:
            Registered Routes:
            ------------------------------------------------------------
              GET      /hello
              POST     /users
            ------------------------------------------------------------
        """
        print("\nRegistered Routes:")
        print("-" * 60)
        for route in self.routes():
            print(f"  {route.method.value:8} {route.path}")
        print("-" * 60)
