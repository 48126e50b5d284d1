"""
pytest configuration and fixtures.
"""

import threading
from typing import Dict, Generator, List, Optional

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from microapi import App, ServerConfig
from microapi.http import Request, Response, ResponseWriter, ok
from microapi.http.request_builder import RequestHead


class RecordingWriter(ResponseWriter):
    """ResponseWriter that keeps every call for assertions."""

    def __init__(self, fail_on: Optional[str] = None):
        self.calls: List[str] = []
        self.status_code: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.body = b""
        self.fail_on = fail_on

    def _record(self, name: str):
        self.calls.append(name)
        if name == self.fail_on:
            raise ConnectionError(f"{name} failed")

    def write_head(self, status_code, headers):
        self._record("head")
        self.status_code = status_code
        self.headers = dict(headers)

    def write_body(self, data):
        self._record("body")
        self.body += data

    def write_end(self):
        self._record("end")


@pytest.fixture
def writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def sample_get_head() -> RequestHead:
    """Head of a GET with a query string."""
    return RequestHead(
        method="GET",
        uri="/api/users?page=1&limit=10",
        headers=[("Host", "localhost:8080"), ("Accept", "application/json")],
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Raw HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ServerConfig:
    """Test server configuration."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=0.5,
        log_level="WARNING",
    )


class ServerThread:
    """Runs an App in a background thread."""

    def __init__(self, app: App):
        self.app = app
        self._thread: Optional[threading.Thread] = None

    def start(self):
        self._thread = threading.Thread(target=self.app.run, daemon=True)
        self._thread.start()
        if not self.app.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    @property
    def port(self) -> int:
        return self.app.address[1]

    def stop(self):
        self.app.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)


@pytest.fixture
def test_server(config: ServerConfig) -> Generator[ServerThread, None, None]:
    """A running server with a couple of routes."""
    app = App(config)

    @app.get("/test")
    def test_route(request: Request) -> Response:
        return ok({"status": "ok"})

    @app.post("/echo")
    def echo_route(request: Request) -> Response:
        return ok({"received": request.body})

    @app.get("/boom")
    def boom(request: Request) -> Response:
        raise RuntimeError("kaboom")

    server = ServerThread(app)
    server.start()

    yield server

    server.stop()
