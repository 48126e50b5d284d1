"""
=============================================================================
MIDDLEWARE CHAIN
=============================================================================

The middleware protocol and the pipeline that composes middleware around
a terminal handler (Chain of Responsibility).

=============================================================================
THE ONION
=============================================================================

    app.use(ErrorHandlingMiddleware())    # registered first  = outermost
    app.use(LoggingMiddleware())
    app.use(CORSMiddleware())             # registered last   = innermost

    ┌─────────────────────────────────────────────────────────────────────┐
    │  ErrorHandlingMiddleware                                            │
    │  ┌───────────────────────────────────────────────────────────────┐  │
    │  │  LoggingMiddleware                                            │  │
    │  │  ┌─────────────────────────────────────────────────────────┐  │  │
    │  │  │  CORSMiddleware                                         │  │  │
    │  │  │  ┌───────────────────────────────────────────────────┐  │  │  │
    │  │  │  │          TERMINAL HANDLER (router.route)          │  │  │  │
    │  │  │  └───────────────────────────────────────────────────┘  │  │  │
    │  │  └─────────────────────────────────────────────────────────┘  │  │
    │  └───────────────────────────────────────────────────────────────┘  │
    └─────────────────────────────────────────────────────────────────────┘

Code before ``next(request)`` runs in registration order, code after it
runs in reverse. A middleware that returns without calling next() stops
the request there: nothing further in, and not the handler.

Exceptions are not caught by the chain. Whatever a handler or middleware
raises propagates out through every layer that does not catch it.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Callable, Iterator, List, Optional
import logging

from ..http.models import Request, Response


logger = logging.getLogger(__name__)


# The rest of the chain, as seen from inside one middleware.
NextHandler = Callable[[Request], Response]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses implement ``process``:

        class TimingHeader(Middleware):
            def process(self, request, next):
                start = time.perf_counter()
                response = next(request)
                elapsed = (time.perf_counter() - start) * 1000
                return response.with_headers({"X-Elapsed-Ms": f"{elapsed:.1f}"})

    Instances are shared by every worker thread, so any state they keep
    must be safe to read concurrently.
    """

    @abstractmethod
    def process(self, request: Request, next: NextHandler) -> Response:
        """
        Handle a request.

        Args:
            request: The incoming request
            next: The rest of the chain; call it to continue

        Returns:
            The response from next(), possibly replaced, or a
            short-circuit response
        """

    def __call__(self, request: Request, next: NextHandler) -> Response:
        return self.process(request, next)

    @property
    def name(self) -> str:
        """Name used in log messages."""
        return self.__class__.__name__


class MiddlewarePipeline:
    """
    Ordered list of middleware that can wrap a terminal handler.

    Usage:
        pipeline = MiddlewarePipeline()
        pipeline.add(LoggingMiddleware()).add(CORSMiddleware())

        handler = pipeline.wrap(router.route)
        response = handler(request)
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        """
        Append middleware. Earlier additions wrap later ones.

        Returns:
            Self for method chaining

        Raises:
            TypeError: If ``middleware`` is not a Middleware instance
        """
        if not isinstance(middleware, Middleware):
            raise TypeError(f"Expected Middleware, got {type(middleware).__name__}")
        self._middleware.append(middleware)
        logger.debug(f"Added middleware: {middleware.name}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        """Add several middleware in order."""
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Compose every middleware around ``handler``.

        Folds from the right: given [A, B, C] the result is
        A(B(C(handler))), so A sees the request first and the
        response last.

        Args:
            handler: The terminal handler

        Returns:
            A single callable running the whole chain
        """
        current = handler
        for middleware in reversed(self._middleware):
            current = self._link(middleware, current)
        return current

    @staticmethod
    def _link(middleware: Middleware, next_handler: NextHandler) -> NextHandler:
        # A separate function so each closure captures its own pair
        def wrapped(request: Request) -> Response:
            return middleware.process(request, next_handler)

        return wrapped

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._middleware)


# =============================================================================
# FUNCTION MIDDLEWARE
# =============================================================================

class FunctionMiddleware(Middleware):
    """
    Adapts a plain ``(request, next) -> Response`` function to Middleware.

    Usage:
        def add_server_header(request, next):
            return next(request).with_headers({"Server": "microapi"})

        app.use(FunctionMiddleware(add_server_header))
    """

    def __init__(
        self,
        func: Callable[[Request, NextHandler], Response],
        name: Optional[str] = None
    ):
        self._func = func
        self._name = name or func.__name__

    def process(self, request: Request, next: NextHandler) -> Response:
        return self._func(request, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(
    func: Callable[[Request, NextHandler], Response]
) -> FunctionMiddleware:
    """
    Decorator form of FunctionMiddleware.

        @function_middleware
        def no_store(request, next):
            return next(request).with_headers({"Cache-Control": "no-store"})

        app.use(no_store)
    """
    return FunctionMiddleware(func)
