"""
Tests for the demo application and command-line parsing.
"""

import json

import pytest

from microapi import ServerConfig
from microapi.__main__ import build_app, config_from_args, main, parse_args
from microapi.core.channel import HTTPChannelHandler
from microapi.http import Method, Request, UnknownMethodPolicy
from microapi.http.request_builder import RequestHead


@pytest.fixture
def demo():
    return build_app(ServerConfig(port=0))


class TestDemoRoutes:

    def test_hello(self, demo):
        """Test greeting by name."""
        response = demo.handle(Request(Method.GET, "/hello", query={"name": "Ann"}))
        assert response.body == {"message": "Hello, Ann!"}

    def test_hello_default(self, demo):
        """Test the default greeting."""
        assert demo.handle(Request(Method.GET, "/hello")).body == {"message": "Hello, World!"}

    def test_create_user(self, demo):
        """Test creating a user."""
        response = demo.handle(Request(Method.POST, "/users", body={"name": "Ann"}))

        assert response.status_code == 201
        assert response.body["name"] == "Ann"
        assert len(response.body["id"]) == 36

    @pytest.mark.parametrize("body", [{}, {"name": None}, {"name": 7}])
    def test_create_user_requires_name(self, demo, body):
        """Test that a user needs a string name."""
        response = demo.handle(Request(Method.POST, "/users", body=body))

        assert response.status_code == 400
        assert response.body == {"error": "Name is required"}

    def test_echo(self, demo):
        """Test echoing the request body."""
        response = demo.handle(Request(Method.POST, "/echo", body={"a": [1, 2]}))
        assert response.body == {"received": {"a": [1, 2]}}

    def test_health_and_index(self, demo):
        """Test the health and index routes."""
        assert demo.handle(Request(Method.GET, "/health")).body == {"status": "UP"}
        assert "version" in demo.handle(Request(Method.GET, "/")).body

    def test_cors_preflight(self, writer):
        """Test a preflight request with CORS enabled."""
        app = build_app(ServerConfig(port=0), cors=True)
        channel = HTTPChannelHandler(app.dispatcher)

        channel.on_head(RequestHead("OPTIONS", "/users"))
        channel.on_end(writer)

        assert writer.status_code == 204
        assert writer.headers["Access-Control-Allow-Origin"] == "*"

    def test_full_pipeline(self, writer):
        """Test a request through the channel, middleware and router."""
        app = build_app(ServerConfig(port=0), cors=True)
        channel = HTTPChannelHandler(app.dispatcher)

        channel.on_head(RequestHead("GET", "/hello?name=Ann"))
        channel.on_end(writer)

        assert writer.status_code == 200
        assert writer.headers["Access-Control-Allow-Origin"] == "*"
        assert json.loads(writer.body) == {"message": "Hello, Ann!"}


class TestArgs:

    def test_flags_override_environment(self, monkeypatch):
        """Test that flags take precedence over the environment."""
        monkeypatch.setenv("MICROAPI_PORT", "9000")
        monkeypatch.setenv("MICROAPI_HOST", "0.0.0.0")

        config = config_from_args(parse_args(["--port", "3000", "--reject-unknown-methods"]))

        assert config.port == 3000
        assert config.host == "0.0.0.0"
        assert config.unknown_method_policy is UnknownMethodPolicy.REJECT

    def test_workers(self, monkeypatch):
        """Test the worker and log level flags."""
        monkeypatch.delenv("MICROAPI_WORKERS", raising=False)
        config = config_from_args(parse_args(["-w", "2", "-l", "DEBUG"]))

        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.log_level == "DEBUG"

    def test_invalid_port_exits_with_error(self, capsys):
        """Test that main() reports an invalid port."""
        assert main(["--port", "70000"]) == 1
        assert "Invalid port" in capsys.readouterr().err

    def test_version(self, capsys):
        """Test --version."""
        with pytest.raises(SystemExit) as exc_info:
            parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "microapi" in capsys.readouterr().out
