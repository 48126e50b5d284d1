"""
Unit tests for the exact-match router.
"""

import json

import pytest

from microapi.http.models import Method, Request, Response
from microapi.http.response import ok
from microapi.http.router import Route, Router


def make_request(method: Method, path: str) -> Request:
    """Helper to create a request for testing."""
    return Request(method=method, path=path)


def dummy_handler(request: Request) -> Response:
    """Dummy handler for testing."""
    return ok({"path": request.path, "method": request.method.value})


class TestRouter:
    """Tests for Router class."""

    def test_add_route(self):
        """Test adding routes."""
        router = Router()
        route = router.add_route(Method.GET, "/users", dummy_handler)

        assert len(router) == 1
        assert route == Route(Method.GET, "/users", dummy_handler)
        assert router.lookup("/users", Method.GET) is route

    def test_route_dispatches_to_handler(self):
        """Test routing to a handler."""
        router = Router()
        router.add_route(Method.GET, "/users", dummy_handler)

        response = router.route(make_request(Method.GET, "/users"))

        assert response.status_code == 200
        assert response.body == {"path": "/users", "method": "GET"}

    def test_same_path_different_methods(self):
        """Test one path with two methods."""
        router = Router()
        router.add_route(Method.GET, "/users", lambda r: ok({"op": "list"}))
        router.add_route(Method.POST, "/users", lambda r: ok({"op": "create"}))

        assert router.route(make_request(Method.GET, "/users")).body["op"] == "list"
        assert router.route(make_request(Method.POST, "/users")).body["op"] == "create"
        assert len(router) == 2

    def test_last_registration_wins(self):
        """Test re-registering a route."""
        router = Router()
        router.add_route(Method.GET, "/a", lambda r: ok({"v": 1}))
        router.add_route(Method.GET, "/a", lambda r: ok({"v": 2}))

        assert len(router) == 1
        assert router.route(make_request(Method.GET, "/a")).body == {"v": 2}

    def test_unknown_path_is_404(self):
        """Test an unknown path."""
        router = Router()
        router.add_route(Method.GET, "/users", dummy_handler)

        response = router.route(make_request(Method.GET, "/posts"))

        assert response.status_code == 404
        assert json.loads(response.json) == {"error": "Not found"}

    def test_wrong_method_is_404(self):
        """Test a known path with the wrong method."""
        router = Router()
        router.add_route(Method.GET, "/users", dummy_handler)

        response = router.route(make_request(Method.DELETE, "/users"))

        assert response.status_code == 404
        assert response.body == {"error": "Not found"}

    @pytest.mark.parametrize("path", ["/users/", "/Users", "/users?x=1", "users"])
    def test_paths_match_exactly(self, path):
        """Test that paths must match exactly."""
        router = Router()
        router.add_route(Method.GET, "/users", dummy_handler)

        assert router.route(make_request(Method.GET, path)).status_code == 404

    def test_empty_router_is_404(self):
        """Test routing with no routes."""
        assert Router().route(make_request(Method.GET, "/")).status_code == 404

    def test_handler_response_returned_unchanged(self):
        """Test that the handler's response is returned as is."""
        sentinel = Response(418, {"X-Tea": "yes"}, {"short": "stout"})
        router = Router()
        router.add_route(Method.PUT, "/pot", lambda r: sentinel)

        assert router.route(make_request(Method.PUT, "/pot")) is sentinel

    def test_handler_exception_propagates(self):
        """Test handler exceptions."""
        def broken(request):
            raise ValueError("broken handler")

        router = Router()
        router.add_route(Method.GET, "/broken", broken)

        with pytest.raises(ValueError, match="broken handler"):
            router.route(make_request(Method.GET, "/broken"))

    def test_handler_receives_request(self):
        """Test that the handler gets the request."""
        seen = []
        router = Router()
        router.add_route(Method.POST, "/capture", lambda r: seen.append(r) or ok())

        request = Request(Method.POST, "/capture", body={"a": 1})
        router.route(request)

        assert seen == [request]


class TestRouterFreeze:
    """Tests for freezing the table."""

    def test_register_after_freeze_raises(self):
        """Test registering on a frozen router."""
        router = Router()
        router.add_route(Method.GET, "/a", dummy_handler)
        router.freeze()

        assert router.frozen
        with pytest.raises(RuntimeError):
            router.add_route(Method.GET, "/b", dummy_handler)
        assert len(router) == 1

    def test_frozen_router_still_routes(self):
        """Test routing after freeze()."""
        router = Router()
        router.add_route(Method.GET, "/a", dummy_handler)
        router.freeze()

        assert router.route(make_request(Method.GET, "/a")).status_code == 200


class TestRouterIntrospection:

    def test_routes_lists_everything(self):
        """Test iterating routes."""
        router = Router()
        router.add_route(Method.GET, "/a", dummy_handler)
        router.add_route(Method.POST, "/a", dummy_handler)
        router.add_route(Method.GET, "/b", dummy_handler)

        pairs = [(r.method, r.path) for r in router]
        assert pairs == [(Method.GET, "/a"), (Method.POST, "/a"), (Method.GET, "/b")]

    def test_lookup_miss(self):
        """Test lookup() on a miss."""
        assert Router().lookup("/nope", Method.GET) is None

    def test_print_routes(self, capsys):
        """Test printing the route table."""
        router = Router()
        router.add_route(Method.GET, "/hello", dummy_handler)
        router.print_routes()

        out = capsys.readouterr().out
        assert "GET" in out
        assert "/hello" in out
