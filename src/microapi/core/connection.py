"""
=============================================================================
CLIENT CONNECTION
=============================================================================

Wraps one accepted client socket and speaks just enough HTTP/1.1 framing
to turn the byte stream into head/body events and to write responses.

=============================================================================
READING: BYTES → EVENTS
=============================================================================

    recv() chunks:  "POST /users HTTP/1.1\r\nContent-Le" "ngth: 13\r\n\r\n{\"name\"" ...
                                        │
                          read_head()   │  buffer until \r\n\r\n
                                        ▼
    RequestHead(method="POST", uri="/users",
                headers=[("Content-Length", "13")], version="HTTP/1.1")
                                        │
                          iter_body()   │  exactly Content-Length bytes,
                                        ▼  in chunks of at most buffer_size
                               b'{"name"', b':"Ann"}'

Bytes past the end of one request stay buffered for the next read_head()
on the same connection (pipelined requests).

Framing problems raise HTTPParseError carrying the status to answer with:

    no request line / bad header line / bad Content-Length  → 400
    head not complete within the timeout                    → 408
    head + body larger than max_request_size                → 413
    Transfer-Encoding (chunked bodies)                      → 501

=============================================================================
WRITING: EVENTS → BYTES
=============================================================================

ConnectionWriter receives the serializer's write_head / write_body /
write_end calls, buffers them, and on write_end sends one message:

    HTTP/1.1 200 OK\r\n
    Content-Type: application/json\r\n       ← from write_head
    Content-Length: 27\r\n                   ← computed from the body
    Date: Sat, 17 Oct 2026 12:00:00 GMT\r\n  ← added when missing
    Server: microapi/1.0\r\n                 ← added when missing
    Connection: keep-alive\r\n               ← decided by the connection loop
    \r\n
    {"message": "Hello, Ann!"}

=============================================================================
"""

import json
import re
import socket
import time
import logging
import uuid
from dataclasses import dataclass, field
from email.utils import formatdate
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from ..http.request_builder import RequestHead
from ..http.serializer import ResponseWriter
from ..http.status_codes import HTTPStatus, reason_phrase


logger = logging.getLogger(__name__)


HEAD_TERMINATOR = b"\r\n\r\n"

# Method tokens are matched loosely here; mapping them onto the supported
# methods is the request builder's job
REQUEST_LINE_PATTERN = re.compile(r"^([!#$%&'*+.^_`|~0-9A-Za-z-]+) (\S+) (HTTP/\d\.\d)$")
HEADER_PATTERN = re.compile(r"^([^:\s]+):\s*(.*)$")
# ASCII only: str.isdigit() also accepts digits int() cannot parse
DIGITS_PATTERN = re.compile(r"[0-9]+")

# Statuses whose responses never carry a body
_BODYLESS_STATUSES = (HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED)


class HTTPParseError(Exception):
    """
    The request could not be framed.

    Attributes:
        message: What was wrong
        status_code: Status to answer with before closing the connection
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSED = "closed"


def format_http_date(timestamp: Optional[float] = None) -> str:
    """HTTP-date for the Date header, e.g. 'Sat, 17 Oct 2026 12:00:00 GMT'."""
    return formatdate(timestamp, usegmt=True)


def parse_head(data: bytes) -> RequestHead:
    """
    Parse the bytes of a request head (without the blank line).

    Raises:
        HTTPParseError: If the request line or a header line is malformed
    """
    text = data.decode("utf-8", errors="replace")
    # Clients may send empty lines before the request line
    lines = text.lstrip("\r\n").split("\r\n")

    match = REQUEST_LINE_PATTERN.match(lines[0])
    if not match:
        raise HTTPParseError(f"Invalid request line: {lines[0][:100]!r}")
    method, uri, version = match.groups()

    headers: List[Tuple[str, str]] = []
    for line in lines[1:]:
        if not line:
            continue
        header_match = HEADER_PATTERN.match(line)
        if not header_match:
            raise HTTPParseError(f"Invalid header line: {line[:100]!r}")
        name, value = header_match.groups()
        headers.append((name, value.strip()))

    return RequestHead(method=method, uri=uri, headers=headers, version=version)


def header_value(head: RequestHead, name: str) -> Optional[str]:
    """Last value of a header, matched case-insensitively."""
    lowered = name.lower()
    value = None
    for key, val in head.headers:
        if key.lower() == lowered:
            value = val
    return value


def content_length(head: RequestHead) -> int:
    """
    Body length announced by the head.

    Raises:
        HTTPParseError: For chunked bodies or a bad Content-Length
    """
    if header_value(head, "Transfer-Encoding") is not None:
        raise HTTPParseError("Transfer-Encoding is not supported", HTTPStatus.NOT_IMPLEMENTED)

    raw = header_value(head, "Content-Length")
    if raw is None:
        return 0
    if not DIGITS_PATTERN.fullmatch(raw):
        raise HTTPParseError(f"Invalid Content-Length: {raw!r}")
    return int(raw)


def should_keep_alive(head: RequestHead) -> bool:
    """
    Whether the client wants the connection kept open.

    HTTP/1.1 keeps it open unless the client sends "Connection: close";
    HTTP/1.0 closes it unless the client sends "Connection: keep-alive".
    """
    connection = (header_value(head, "Connection") or "").lower()
    if head.version == "HTTP/1.0":
        return "keep-alive" in connection
    return "close" not in connection


@dataclass
class Connection:
    """
    One accepted client connection.

    Usage:
        with conn:
            head = conn.read_head()
            for chunk in conn.iter_body():
                ...
            conn.send(response_bytes)
    """

    sock: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.monotonic)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024
    server_name: str = "microapi/1.0"

    _buffer: bytes = field(default=b"", repr=False)
    _body_remaining: int = field(default=0, repr=False)

    def __post_init__(self):
        self.sock.setblocking(True)
        self.sock.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    # =========================================================================
    # READING
    # =========================================================================

    def read_head(self) -> Optional[RequestHead]:
        """
        Read and parse the next request head.

        On a kept-alive connection the wait for the next request uses
        keep_alive_timeout instead of timeout.

        Returns:
            The RequestHead, or None if the client closed the connection
            (or went idle on a kept-alive one) before sending anything

        Raises:
            HTTPParseError: If the head is malformed, too large or too slow
        """
        self.state = ConnectionState.READING
        if self.requests_handled > 0:
            self.sock.settimeout(self.keep_alive_timeout)

        try:
            while HEAD_TERMINATOR not in self._buffer:
                if len(self._buffer) > self.max_request_size:
                    raise HTTPParseError("Request head too large", HTTPStatus.PAYLOAD_TOO_LARGE)
                chunk = self._recv()
                if not chunk:
                    if self._buffer.strip():
                        raise HTTPParseError("Connection closed mid-request")
                    return None
                self._buffer += chunk
                # The first bytes of a request switch back to the request timeout
                self.sock.settimeout(self.timeout)
        except socket.timeout:
            if not self._buffer.strip():
                logger.debug(f"[{self.id}] Idle timeout")
                return None
            raise HTTPParseError("Timed out reading request head", HTTPStatus.REQUEST_TIMEOUT)
        finally:
            self.sock.settimeout(self.timeout)

        head_end = self._buffer.find(HEAD_TERMINATOR)
        head_bytes = self._buffer[:head_end]
        self._buffer = self._buffer[head_end + len(HEAD_TERMINATOR):]

        head = parse_head(head_bytes)
        length = content_length(head)
        if head_end + length > self.max_request_size:
            raise HTTPParseError(
                f"Request of {head_end + length} bytes exceeds {self.max_request_size}",
                HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        self._body_remaining = length
        return head

    def iter_body(self) -> Iterator[bytes]:
        """
        Yield the body of the request whose head was just read.

        Raises:
            ConnectionError: If the client disconnects mid-body
            HTTPParseError: If the body does not arrive within the timeout
        """
        while self._body_remaining > 0:
            if not self._buffer:
                try:
                    chunk = self._recv()
                except socket.timeout:
                    raise HTTPParseError("Timed out reading request body", HTTPStatus.REQUEST_TIMEOUT)
                if not chunk:
                    raise ConnectionError(f"Client closed connection with {self._body_remaining} body bytes pending")
                self._buffer = chunk

            take = min(self._body_remaining, self.buffer_size, len(self._buffer))
            piece, self._buffer = self._buffer[:take], self._buffer[take:]
            self._body_remaining -= take
            yield piece

    def _recv(self) -> bytes:
        try:
            return self.sock.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send(self, data: bytes) -> bool:
        """
        Send bytes to the client.

        Returns:
            True on success, False if the client is gone
        """
        self.state = ConnectionState.WRITING
        try:
            self.sock.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    def send_error(self, status_code: int, message: str) -> bool:
        """Send a minimal JSON error response and mark the connection for closing."""
        writer = ConnectionWriter(self, keep_alive=False)
        writer.write_head(status_code, {"Content-Type": "application/json"})
        writer.write_body(json.dumps({"error": message}).encode("utf-8"))
        return writer.flush()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """Shut down and close the socket. Idempotent."""
        if self.state is ConnectionState.CLOSED:
            return

        try:
            self.sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"[{self.id}] shutdown: {e}")
        try:
            self.sock.close()
        except OSError as e:
            logger.debug(f"[{self.id}] close: {e}")

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class ConnectionWriter(ResponseWriter):
    """
    Buffers one response and sends it on write_end.

    Args:
        connection: Destination
        keep_alive: Value of the Connection header sent
    """

    def __init__(self, connection: Connection, keep_alive: bool = True):
        self.connection = connection
        self.keep_alive = keep_alive
        self.status_code: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self._body = bytearray()
        self.sent = False

    def write_head(self, status_code: int, headers: Mapping[str, str]) -> None:
        self.status_code = status_code
        self.headers = dict(headers)

    def write_body(self, data: bytes) -> None:
        self._body.extend(data)

    def write_end(self) -> None:
        if not self.flush():
            raise ConnectionError(f"[{self.connection.id}] Response could not be sent")

    def flush(self) -> bool:
        """
        Send the buffered response.

        Returns:
            True if the bytes were sent

        Raises:
            RuntimeError: If no head was written
        """
        if self.status_code is None:
            raise RuntimeError("write_end called before write_head")

        sent = self.connection.send(self.to_bytes())
        self.sent = sent
        return sent

    def to_bytes(self) -> bytes:
        """The complete HTTP/1.1 message."""
        status = self.status_code
        body = bytes(self._body)
        bodyless = status in _BODYLESS_STATUSES or 100 <= status < 200
        if bodyless:
            body = b""

        # Framing headers are always computed here
        headers = {
            name: value for name, value in self.headers.items()
            if name.lower() not in ("content-length", "connection", "transfer-encoding")
        }
        present = {name.lower() for name in headers}
        if not bodyless:
            headers["Content-Length"] = str(len(body))
        if "date" not in present:
            headers["Date"] = format_http_date()
        if "server" not in present:
            headers["Server"] = self.connection.server_name
        headers["Connection"] = "keep-alive" if self.keep_alive else "close"

        lines = [f"HTTP/1.1 {status} {reason_phrase(status)}"]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8")
        return head + body
