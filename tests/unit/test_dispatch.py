"""
Tests for the dispatch core: DispatchHandler and HTTPChannelHandler driven
through a recording writer, without sockets.
"""

import json
import logging

import pytest

from microapi.core.channel import HTTPChannelHandler
from microapi.http.dispatch import DispatchHandler
from microapi.http.models import Method, Request, Response
from microapi.http.request_builder import RequestHead, UnknownMethodPolicy
from microapi.http.response import ok
from microapi.http.router import Router
from microapi.middleware import CORSMiddleware, ErrorHandlingMiddleware, FunctionMiddleware


def hello(request: Request) -> Response:
    name = request.query_param("name", "World")
    return ok({"message": f"Hello, {name}!"})


def explode(request: Request) -> Response:
    raise RuntimeError("handler exploded")


@pytest.fixture
def router() -> Router:
    router = Router()
    router.add_route(Method.GET, "/hello", hello)
    router.add_route(Method.POST, "/echo", lambda r: ok({"received": dict(r.body)}))
    router.add_route(Method.GET, "/explode", explode)
    return router


def run_request(channel, writer, method, uri, headers=(), body=b""):
    channel.on_head(RequestHead(method, uri, list(headers)))
    if body:
        channel.on_body(body)
    return channel.on_end(writer)


class TestDispatchHandler:

    def test_routes_request(self, router):
        """Test dispatching to the router."""
        response = DispatchHandler(router).handle(Request(Method.GET, "/hello"))
        assert response.body == {"message": "Hello, World!"}

    def test_none_request_is_400_without_middleware(self, router):
        """Test that a missing request skips middleware and answers 400."""
        seen = []

        def spy(request, next):
            seen.append(request)
            return next(request)

        dispatcher = DispatchHandler(router, [FunctionMiddleware(spy)])
        response = dispatcher(None)

        assert response.status_code == 400
        assert json.loads(response.json) == {"error": "Invalid request"}
        assert seen == []

    def test_uncaught_exception_propagates(self, router):
        """Test that handler errors are not caught here."""
        with pytest.raises(RuntimeError):
            DispatchHandler(router).handle(Request(Method.GET, "/explode"))

    def test_middleware_wraps_router(self, router):
        """Test that middleware also sees 404s."""
        dispatcher = DispatchHandler(router, [CORSMiddleware()])
        response = dispatcher.handle(Request(Method.GET, "/missing"))

        assert response.status_code == 404
        assert response.headers["Access-Control-Allow-Origin"] == "*"


class TestHTTPChannelHandler:
    """End-to-end: head/body/end events in, writer calls out."""

    def test_hello_with_cors(self, router, writer):
        """Test a GET through CORS middleware."""
        channel = HTTPChannelHandler(DispatchHandler(router, [CORSMiddleware()]))

        run_request(channel, writer, "GET", "/hello?name=Ann")

        assert writer.calls == ["head", "body", "end"]
        assert writer.status_code == 200
        assert writer.headers["Access-Control-Allow-Origin"] == "*"
        assert writer.headers["Content-Type"] == "application/json"
        assert json.loads(writer.body) == {"message": "Hello, Ann!"}

    def test_post_json_body(self, router, writer):
        """Test a POST with a JSON body."""
        channel = HTTPChannelHandler(DispatchHandler(router))

        run_request(
            channel, writer, "POST", "/echo",
            headers=[("Content-Type", "application/json")],
            body=b'{"name": "Ann", "tags": ["x"]}',
        )

        assert json.loads(writer.body) == {"received": {"name": "Ann", "tags": ["x"]}}

    def test_invalid_json_body_still_dispatched(self, router, writer):
        """Test that an unparseable body still reaches the handler."""
        channel = HTTPChannelHandler(DispatchHandler(router))

        run_request(channel, writer, "POST", "/echo", body=b"{not json")

        assert writer.status_code == 200
        assert json.loads(writer.body) == {"received": {}}

    def test_not_found(self, router, writer):
        """Test an unknown path."""
        channel = HTTPChannelHandler(DispatchHandler(router))

        run_request(channel, writer, "GET", "/nowhere")

        assert writer.status_code == 404
        assert json.loads(writer.body) == {"error": "Not found"}

    def test_unknown_method_falls_back_to_get(self, router, writer):
        """Test the GET fallback for unknown methods."""
        channel = HTTPChannelHandler(DispatchHandler(router))

        run_request(channel, writer, "PATCH", "/hello")

        assert writer.status_code == 200

    def test_unknown_method_rejected(self, router, writer):
        """Test rejecting unknown methods."""
        channel = HTTPChannelHandler(DispatchHandler(router), UnknownMethodPolicy.REJECT)

        run_request(channel, writer, "PATCH", "/hello")

        assert writer.status_code == 400
        assert json.loads(writer.body) == {"error": "Invalid request"}

    def test_end_without_head_is_invalid(self, router, writer):
        """Test on_end with no head."""
        channel = HTTPChannelHandler(DispatchHandler(router))

        response = channel.on_end(writer)

        assert response.status_code == 400
        assert writer.calls == ["head", "body", "end"]

    def test_uncaught_exception_becomes_500(self, router, writer, caplog):
        """Test the 500 fallback for handler errors."""
        channel = HTTPChannelHandler(DispatchHandler(router))

        with caplog.at_level(logging.ERROR, logger="microapi"):
            run_request(channel, writer, "GET", "/explode")

        assert writer.status_code == 500
        assert json.loads(writer.body) == {"error": "Internal server error"}
        assert "handler exploded" in caplog.text

    def test_error_middleware_exposes_message(self, router, writer):
        """Test error middleware output."""
        channel = HTTPChannelHandler(DispatchHandler(router, [ErrorHandlingMiddleware()]))

        run_request(channel, writer, "GET", "/explode")

        assert writer.status_code == 500
        assert json.loads(writer.body)["message"] == "handler exploded"

    def test_builder_reset_between_requests(self, router, writer):
        """Test that request state does not leak between requests."""
        channel = HTTPChannelHandler(DispatchHandler(router))
        run_request(channel, writer, "GET", "/hello?name=Ann", headers=[("X-A", "1")])

        second = type(writer)()
        run_request(channel, second, "GET", "/hello")

        assert json.loads(second.body) == {"message": "Hello, World!"}
        assert channel.builder.method is None
        assert channel.builder.body_size == 0
