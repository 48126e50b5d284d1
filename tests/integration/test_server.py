"""
Integration tests against a running server over real sockets.
"""

import http.client
import json
import socket
import threading


def request(port, method, path, body=None, headers=None):
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=5)
    try:
        conn.request(method, path, body=body, headers=headers or {})
        response = conn.getresponse()
        return response.status, dict(response.getheaders()), response.read()
    finally:
        conn.close()


class TestServer:

    def test_get(self, test_server):
        """Test a simple GET."""
        status, headers, body = request(test_server.port, "GET", "/test")

        assert status == 200
        assert headers["Content-Type"] == "application/json"
        assert int(headers["Content-Length"]) == len(body)
        assert json.loads(body) == {"status": "ok"}

    def test_post_json(self, test_server):
        """Test a POST with a JSON body."""
        payload = json.dumps({"name": "Ann", "tags": ["a"]})
        status, _, body = request(
            test_server.port, "POST", "/echo", body=payload,
            headers={"Content-Type": "application/json"},
        )

        assert status == 200
        assert json.loads(body) == {"received": {"name": "Ann", "tags": ["a"]}}

    def test_not_found(self, test_server):
        """Test an unknown path."""
        status, _, body = request(test_server.port, "GET", "/missing")

        assert status == 404
        assert json.loads(body) == {"error": "Not found"}

    def test_handler_error_is_500(self, test_server):
        """Test a handler that raises."""
        status, _, body = request(test_server.port, "GET", "/boom")

        assert status == 500
        assert json.loads(body) == {"error": "Internal server error"}

    def test_keep_alive_reuses_connection(self, test_server):
        """Test several requests on one connection."""
        conn = http.client.HTTPConnection("127.0.0.1", test_server.port, timeout=5)
        try:
            for _ in range(3):
                conn.request("GET", "/test")
                response = conn.getresponse()
                assert response.status == 200
                assert response.getheader("Connection") == "keep-alive"
                response.read()
        finally:
            conn.close()

    def test_chunked_request_is_501(self, test_server):
        """Test a chunked request."""
        with socket.create_connection(("127.0.0.1", test_server.port), timeout=5) as sock:
            sock.sendall(
                b"POST /echo HTTP/1.1\r\n"
                b"Transfer-Encoding: chunked\r\n"
                b"\r\n"
                b"0\r\n\r\n"
            )
            data = sock.recv(65536)

        assert data.startswith(b"HTTP/1.1 501 Not Implemented\r\n")

    def test_concurrent_requests(self, test_server):
        """Test concurrent clients."""
        results = []
        lock = threading.Lock()

        def worker():
            status, _, _ = request(test_server.port, "GET", "/test")
            with lock:
                results.append(status)

        threads = [threading.Thread(target=worker) for _ in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert results == [200] * 10
