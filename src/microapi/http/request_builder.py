"""
=============================================================================
REQUEST BUILDER
=============================================================================

Assembles a Request from the events the transport delivers for one HTTP
message: a head, zero or more body chunks, and an end marker.

=============================================================================
STATE MACHINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   ┌───────┐  set_head   ┌─────────┐  append_body  ┌──────────────┐  │
    │   │ Empty │────────────►│ HeadSet │──────────────►│ Accumulating │  │
    │   └───────┘             └────┬────┘               └──────┬───────┘  │
    │       ▲                      │ build()                   │ build()  │
    │       │                      ▼                           ▼          │
    │       │  reset()        ┌──────────────────────────────────────┐    │
    │       └─────────────────│ Built: Request, or None if the head  │    │
    │                         │ never set a method and path          │    │
    │                         └──────────────────────────────────────┘    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

One builder lives per connection and is reused for every request on it,
so the connection driver must call reset() after each build().

=============================================================================
QUERY STRING DECODING
=============================================================================

    /search?q=hello%20world&x=1&broken
       │         │             │    │
       │         │             │    └── no "=": dropped
       │         │             └─────── x → "1"
       │         └───────────────────── q → "hello world"
       └─────────────────────────────── path "/search"

- the URI is split on the FIRST "?"
- pairs are split on "&", each pair on its FIRST "="
- keys and values are percent-decoded; a pair with a malformed escape
  ("%zz", "%4") or bytes that are not UTF-8 is dropped
- "+" is kept literally, it is not a space here
- duplicate keys: the last value wins

=============================================================================
BODY DECODING
=============================================================================

The accumulated bytes are parsed as JSON. Only a JSON object becomes the
request body; anything else (invalid JSON, an array, a number) leaves the
body empty and is logged. A bad body never makes the request unbuildable.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote
import json
import logging
import re

from .models import Method, Request


logger = logging.getLogger(__name__)


# A "%" that is not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass
class RequestHead:
    """
    The head of one HTTP request as framed by the transport.

    Attributes:
        method: Raw method token ("GET", "PATCH", ...)
        uri: Request target, query string included
        headers: Header (name, value) pairs in wire order
        version: HTTP version string
    """

    method: str
    uri: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    version: str = "HTTP/1.1"


class UnknownMethodPolicy(str, Enum):
    """
    What the builder does with a method token outside Method.

    FALLBACK_TO_GET treats the request as a GET (and logs a warning).
    REJECT leaves the builder without a method, so build() returns None
    and the client receives 400 Invalid request.
    """

    FALLBACK_TO_GET = "fallback_to_get"
    REJECT = "reject"


def percent_decode(text: str) -> Optional[str]:
    """
    Strictly percent-decode a query component.

    Returns:
        The decoded text, or None if an escape is malformed or the
        decoded bytes are not valid UTF-8
    """
    if _BAD_ESCAPE.search(text):
        return None
    try:
        return unquote(text, errors="strict")
    except UnicodeDecodeError:
        return None


def parse_query(query_string: str) -> Dict[str, str]:
    """
    Decode a query string into a dict.

    Example:
        parse_query("q=hello%20world&x=1&broken") → {"q": "hello world", "x": "1"}
    """
    params: Dict[str, str] = {}
    for pair in query_string.split("&"):
        if "=" not in pair:
            continue
        raw_key, raw_value = pair.split("=", 1)
        key = percent_decode(raw_key)
        value = percent_decode(raw_value)
        if key is None or value is None:
            logger.debug(f"Dropping undecodable query pair: {pair!r}")
            continue
        params[key] = value
    return params


class RequestBuilder:
    """
    Incremental, reusable Request assembler.

    Usage:
        builder = RequestBuilder()
        builder.set_head(RequestHead("POST", "/users?notify=1", [("Content-Type", "application/json")]))
        builder.append_body(b'{"name": ')
        builder.append_body(b'"Ann"}')
        request = builder.build()    # Request(POST, "/users", ..., body={"name": "Ann"})
        builder.reset()
    """

    def __init__(self, unknown_method_policy: UnknownMethodPolicy = UnknownMethodPolicy.FALLBACK_TO_GET):
        self.unknown_method_policy = UnknownMethodPolicy(unknown_method_policy)
        self.method: Optional[Method] = None
        self.path: Optional[str] = None
        self.query: Dict[str, str] = {}
        self.headers: Dict[str, str] = {}
        self._body = bytearray()

    def set_head(self, head: RequestHead) -> None:
        """
        Capture method, path, query and headers from a request head.

        Args:
            head: The framed request head
        """
        self.method = self._resolve_method(head.method)

        path, sep, query_string = head.uri.partition("?")
        self.path = path
        if sep:
            self.query.update(parse_query(query_string))

        for name, value in head.headers:
            self.headers[name] = value

    def append_body(self, data: bytes) -> None:
        """Append a chunk of raw body bytes."""
        self._body.extend(data)

    def build(self) -> Optional[Request]:
        """
        Finalize the accumulated parts.

        Returns:
            The Request, or None if no method or path was captured
        """
        if self.method is None or self.path is None:
            return None

        return Request(
            method=self.method,
            path=self.path,
            headers=self.headers,
            query=self.query,
            body=self._decode_body(),
        )

    def reset(self) -> None:
        """Return to the empty state, ready for the next request."""
        self.method = None
        self.path = None
        self.query = {}
        self.headers = {}
        self._body = bytearray()

    @property
    def body_size(self) -> int:
        return len(self._body)

    def _resolve_method(self, token: str) -> Optional[Method]:
        method = Method.from_token(token)
        if method is not None:
            return method

        if self.unknown_method_policy is UnknownMethodPolicy.REJECT:
            logger.warning(f"Rejecting unsupported HTTP method {token!r}")
            return None

        logger.warning(f"Unsupported HTTP method {token!r}, treating as GET")
        return Method.GET

    def _decode_body(self) -> Dict[str, Any]:
        if not self._body:
            return {}

        try:
            data = json.loads(bytes(self._body))
        except ValueError as e:
            # JSONDecodeError and UnicodeDecodeError are both ValueErrors
            logger.warning(f"Failed to parse request body as JSON: {e}")
            return {}

        if not isinstance(data, dict):
            logger.warning(f"Ignoring JSON request body of type {type(data).__name__}, expected an object")
            return {}

        return data
