"""
=============================================================================
DISPATCH HANDLER
=============================================================================

The composition root the transport calls once per request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   builder.build()                                                    │
    │        │                                                             │
    │        ├── None ─────────────► 400 {"error": "Invalid request"}      │
    │        │                       (middleware and router skipped)       │
    │        ▼                                                             │
    │   Request ──► m0 ──► m1 ──► ... ──► router.route ──► handler         │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The chain is composed ONCE, when the DispatchHandler is created, from the
middleware list as it is at that moment.

=============================================================================
"""

from typing import Iterable, Optional
import logging

from .models import Request, Response
from .response import invalid_request
from .router import Router
from ..middleware.base import Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class DispatchHandler:
    """
    Runs requests through the middleware chain into the router.

    Usage:
        dispatcher = DispatchHandler(router, [ErrorHandlingMiddleware(), CORSMiddleware()])
        response = dispatcher.handle(builder.build())
    """

    def __init__(self, router: Router, middleware: Iterable[Middleware] = ()):
        self.router = router
        self.pipeline = MiddlewarePipeline().use(*middleware)
        self._chain = self.pipeline.wrap(router.route)

    def handle(self, request: Optional[Request]) -> Response:
        """
        Dispatch one request.

        Args:
            request: The built request, or None if it could not be built

        Returns:
            The chain's response; exceptions that no middleware catches
            propagate
        """
        if request is None:
            logger.debug("Request could not be built, answering 400")
            return invalid_request()
        return self._chain(request)

    __call__ = handle
