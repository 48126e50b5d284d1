"""
=============================================================================
APPLICATION
=============================================================================

The facade applications are written against: route registration,
middleware registration and the blocking run() loop.

=============================================================================
USAGE
=============================================================================

    from microapi import App, ok
    from microapi.middleware import CORSMiddleware, ErrorHandlingMiddleware

    app = App()
    app.use(ErrorHandlingMiddleware())
    app.use(CORSMiddleware())

    @app.get("/hello")
    def hello(request):
        name = request.query_param("name", "World")
        return ok({"message": f"Hello, {name}!"})

    app.post("/users", create_user)      # plain call form

    app.run(host="0.0.0.0", port=8000)   # blocks until Ctrl+C

=============================================================================
LIFECYCLE
=============================================================================

    ┌──────────────┐   dispatcher / run()   ┌──────────────────────────┐
    │ REGISTERING  │───────────────────────►│ SERVING                  │
    │ get/post/use │                        │ routes + middleware are  │
    │              │                        │ frozen, chain composed   │
    └──────────────┘                        └──────────────────────────┘

The chain is composed once, the first time ``dispatcher`` is read (run()
reads it). Registering a route or middleware after that raises
RuntimeError; worker threads read the table without locks.

=============================================================================
"""

import logging
from typing import Callable, List, Optional, Union

from .config import ServerConfig
from .container import Container
from .core import HTTPChannelHandler, SocketServer, ThreadPool, Connection
from .http.dispatch import DispatchHandler
from .http.models import Method, Request, Response
from .http.router import Handler, Route, Router
from .http.status_codes import HTTPStatus
from .middleware import FunctionMiddleware, Middleware


logger = logging.getLogger(__name__)


class App:
    """
    A microapi application.

    Args:
        config: Server configuration, defaults to ServerConfig()
        router: Router to register routes on, a new one by default
    """

    def __init__(self, config: Optional[ServerConfig] = None, router: Optional[Router] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.router = router if router is not None else Router()
        self._middleware: List[Middleware] = []
        self._container = Container()
        self._dispatcher: Optional[DispatchHandler] = None

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._running = False

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def register(self, method: Union[Method, str], path: str, handler: Handler) -> Route:
        """
        Register ``handler`` for (method, path).

        Args:
            method: A Method, or its name ("GET", "post", ...)
            path: Exact request path
            handler: Callable taking a Request and returning a Response

        Returns:
            The registered Route

        Raises:
            RuntimeError: If the application is already serving
            ValueError: For a method name outside Method
        """
        if isinstance(method, str):
            method = Method(method.upper())
        self._ensure_not_frozen(f"route {method.value} {path}")
        return self.router.add_route(method, path, handler)

    def _route_decorator(self, method: Method, path: str, handler: Optional[Handler]):
        # Works both as app.get(path, handler) and as @app.get(path)
        if handler is not None:
            self.register(method, path, handler)
            return handler

        def decorator(func: Handler) -> Handler:
            self.register(method, path, func)
            return func

        return decorator

    def get(self, path: str, handler: Optional[Handler] = None):
        """Register a GET route."""
        return self._route_decorator(Method.GET, path, handler)

    def post(self, path: str, handler: Optional[Handler] = None):
        """Register a POST route."""
        return self._route_decorator(Method.POST, path, handler)

    def put(self, path: str, handler: Optional[Handler] = None):
        """Register a PUT route."""
        return self._route_decorator(Method.PUT, path, handler)

    def delete(self, path: str, handler: Optional[Handler] = None):
        """Register a DELETE route."""
        return self._route_decorator(Method.DELETE, path, handler)

    def options(self, path: str, handler: Optional[Handler] = None):
        """Register an OPTIONS route."""
        return self._route_decorator(Method.OPTIONS, path, handler)

    # =========================================================================
    # MIDDLEWARE
    # =========================================================================

    def use(self, middleware: Union[Middleware, Callable[..., Response]]) -> "App":
        """
        Append middleware. The first registered runs first (outermost).

        Plain ``(request, next)`` functions are wrapped in FunctionMiddleware.

        Returns:
            Self for method chaining
        """
        if not isinstance(middleware, Middleware):
            if not callable(middleware):
                raise TypeError(f"Middleware must be a Middleware or callable, got {type(middleware).__name__}")
            middleware = FunctionMiddleware(middleware)
        self._ensure_not_frozen(f"middleware {middleware.name}")
        self._middleware.append(middleware)
        return self

    @property
    def middleware(self) -> List[Middleware]:
        return list(self._middleware)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    @property
    def dispatcher(self) -> DispatchHandler:
        """
        The composed middleware chain around the router.

        Built on first access; from then on routes and middleware are frozen.
        """
        if self._dispatcher is None:
            self.router.freeze()
            self._dispatcher = DispatchHandler(self.router, self._middleware)
            logger.debug(
                f"Dispatcher built: {len(self.router)} routes, {len(self._middleware)} middleware"
            )
        return self._dispatcher

    def handle(self, request: Optional[Request]) -> Response:
        """Dispatch a request in-process, without sockets. Handy in tests."""
        return self.dispatcher.handle(request)

    @property
    def container(self) -> Container:
        return self._container

    def _ensure_not_frozen(self, what: str):
        if self._dispatcher is not None or self.router.frozen:
            raise RuntimeError(f"Cannot register {what}: the application is already serving")

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Serve until interrupted (blocking).

        Args:
            host: Override config host
            port: Override config port (0 picks a free port)
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port
        self.config.validate()

        self._setup_logging()
        dispatcher = self.dispatcher

        self._running = True
        self._thread_pool.start()
        logger.info(f"Starting server at http://{self.config.host}:{self.config.port}")
        if logger.isEnabledFor(logging.DEBUG):
            for route in self.router.routes():
                logger.debug(f"  {route.method.value:8} {route.path}")

        try:
            self._socket_server.start(lambda conn: self._handle_connection(conn, dispatcher))
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask a running server to stop. Safe to call from another thread."""
        self._running = False
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until run() is accepting connections."""
        return self._socket_server.wait_until_listening(timeout)

    @property
    def address(self):
        """(host, port) the server is bound to."""
        return self._socket_server.address

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("microapi").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=self.config.keep_alive_timeout + 1.0)
        logger.info("Server stopped")

    def _handle_connection(self, conn: Connection, dispatcher: DispatchHandler):
        channel = HTTPChannelHandler(
            dispatcher,
            unknown_method_policy=self.config.unknown_method_policy,
            keep_alive=self.config.keep_alive,
            is_running=lambda: self._running,
        )
        if not self._thread_pool.submit(channel.serve, args=(conn,)):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            conn.send_error(HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()


def create_app(config: Optional[ServerConfig] = None) -> App:
    """
    Create an application.

    Example:
        app = create_app(ServerConfig.from_env())
    """
    return App(config)
