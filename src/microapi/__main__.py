"""
=============================================================================
CLI ENTRY POINT
=============================================================================

Runs a small demo API:

    python -m microapi
    python -m microapi --port 3000 --cors
    MICROAPI_PORT=3000 python -m microapi --log-level DEBUG

    curl 'http://localhost:8000/hello?name=Ann'
    curl -X POST -d '{"name": "Ann"}' http://localhost:8000/users

Settings are resolved as: command-line flag, then environment variable
(see ServerConfig.from_env), then the ServerConfig default.

=============================================================================
"""

import argparse
import sys
import time
import uuid
from typing import List, Optional

from . import __version__
from .app import App
from .config import ServerConfig
from .http.models import Request, Response
from .http.request_builder import UnknownMethodPolicy
from .http.response import bad_request, created, ok
from .middleware import CORSMiddleware, ErrorHandlingMiddleware, LoggingMiddleware
from .validation import ValidationError, require_fields


SAMPLE_USERS = [
    {"id": 1, "name": "John Doe", "email": "john@example.com"},
    {"id": 2, "name": "Jane Smith", "email": "jane@example.com"},
    {"id": 3, "name": "Bob Johnson", "email": "bob@example.com"},
]


def build_app(config: Optional[ServerConfig] = None, cors: bool = False) -> App:
    """Create the demo application."""
    app = App(config)

    app.use(ErrorHandlingMiddleware())
    app.use(LoggingMiddleware())
    if cors:
        app.use(CORSMiddleware(handle_preflight=True))

    @app.get("/")
    def index(request: Request) -> Response:
        return ok({"message": "Welcome to microapi!", "version": __version__})

    @app.get("/hello")
    def hello(request: Request) -> Response:
        name = request.query_param("name", "World")
        return ok({"message": f"Hello, {name}!"})

    @app.post("/echo")
    def echo(request: Request) -> Response:
        return ok({"received": request.body})

    @app.get("/time")
    def current_time(request: Request) -> Response:
        return ok({"time": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())})

    @app.get("/health")
    def health(request: Request) -> Response:
        return ok({"status": "UP"})

    @app.get("/users")
    def list_users(request: Request) -> Response:
        return ok({"users": SAMPLE_USERS})

    @app.post("/users")
    def create_user(request: Request) -> Response:
        try:
            require_fields(request.body, "name")
            name = request.get_str("name")
        except (ValidationError, TypeError):
            return bad_request("Name is required")
        return created({"id": str(uuid.uuid4()), "name": name})

    return app


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="python -m microapi",
        description="Run the microapi demo server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m microapi                      # localhost:8000
  python -m microapi --port 3000          # Custom port
  python -m microapi --host 0.0.0.0       # Listen on all interfaces
  python -m microapi --cors               # Add CORS headers
        """
    )

    parser.add_argument("--host", "-H", help="Host to bind to (default: localhost)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8000)")
    parser.add_argument("--workers", "-w", type=int, help="Maximum worker threads")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    parser.add_argument(
        "--reject-unknown-methods",
        action="store_true",
        help="Answer 400 to methods other than GET/POST/PUT/DELETE/OPTIONS instead of treating them as GET"
    )
    parser.add_argument("--cors", action="store_true", help="Enable CORS for all origins")
    parser.add_argument("--version", "-v", action="version", version=f"microapi {__version__}")

    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> ServerConfig:
    """Environment-based config with command-line flags applied on top."""
    config = ServerConfig.from_env()
    if args.host is not None:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers is not None:
        config.max_workers = args.workers
        config.min_workers = min(config.min_workers, args.workers)
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.reject_unknown_methods:
        config.unknown_method_policy = UnknownMethodPolicy.REJECT
    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = config_from_args(args)
        app = build_app(config, cors=args.cors)
        app.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
