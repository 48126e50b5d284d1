"""
=============================================================================
MICROAPI - A Minimal JSON HTTP Framework
=============================================================================

Routes, middleware and JSON in/out on top of a thread-pooled HTTP/1.1
socket server, with no dependencies outside the standard library.

=============================================================================
REQUEST PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   socket ──► Connection ──► HTTPChannelHandler                       │
    │                                  │                                   │
    │                 head, body* ──►  RequestBuilder ──► Request          │
    │                                                       │              │
    │                                      middleware chain ▼              │
    │                                 ┌──────────────────────────┐         │
    │                                 │ m0 → m1 → … → Router     │         │
    │                                 └──────────────────────────┘         │
    │                                                       │              │
    │   socket ◄── ConnectionWriter ◄── ResponseSerializer ◄┘ Response     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    microapi/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m microapi)
    ├── app.py               # App facade: routes, middleware, run()
    ├── config.py            # ServerConfig dataclass
    ├── container.py         # Dependency container
    ├── validation.py        # Validatable, ValidationError, require_fields
    ├── core/                # Sockets and threads
    │   ├── socket_server.py
    │   ├── connection.py
    │   ├── channel.py
    │   └── thread_pool.py
    ├── http/                # Dispatch core
    │   ├── models.py
    │   ├── request_builder.py
    │   ├── router.py
    │   ├── dispatch.py
    │   ├── serializer.py
    │   ├── response.py
    │   └── status_codes.py
    └── middleware/
        ├── base.py
        ├── error_handling.py
        ├── logging.py
        └── cors.py

=============================================================================
QUICK START
=============================================================================

    from microapi import App, ok, created, bad_request
    from microapi.middleware import ErrorHandlingMiddleware, LoggingMiddleware

    app = App()
    app.use(ErrorHandlingMiddleware())
    app.use(LoggingMiddleware())

    @app.get("/hello")
    def hello(request):
        return ok({"message": f"Hello, {request.query_param('name', 'World')}!"})

    @app.post("/users")
    def create_user(request):
        name = request.get_str("name")
        if not name:
            return bad_request("name is required")
        return created({"name": name})

    app.run(port=8000)

=============================================================================
"""

__version__ = "1.0.0"

from .http import (
    Method,
    Request,
    Response,
    BodyTypeMismatch,
    RequestBuilder,
    RequestHead,
    UnknownMethodPolicy,
    Router,
    Route,
    HTTPStatus,
    ok,
    created,
    no_content,
    bad_request,
    invalid_request,
    not_found,
    internal_error,
)
from .http.dispatch import DispatchHandler
from .config import ServerConfig
from .container import Container
from .validation import DefaultValidator, Validatable, ValidationError, require_fields
from .app import App, create_app

__all__ = [
    "__version__",

    # Application
    "App",
    "create_app",
    "ServerConfig",
    "Container",

    # Model
    "Method",
    "Request",
    "Response",
    "BodyTypeMismatch",

    # Pipeline
    "RequestBuilder",
    "RequestHead",
    "UnknownMethodPolicy",
    "Router",
    "Route",
    "DispatchHandler",
    "HTTPStatus",

    # Response helpers
    "ok",
    "created",
    "no_content",
    "bad_request",
    "invalid_request",
    "not_found",
    "internal_error",

    # Validation
    "DefaultValidator",
    "Validatable",
    "ValidationError",
    "require_fields",
]
