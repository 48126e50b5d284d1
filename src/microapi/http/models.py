"""
=============================================================================
REQUEST / RESPONSE MODEL
=============================================================================

The immutable values that flow through the dispatch pipeline: the Request
a route handler receives and the Response it returns.

=============================================================================
REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Request VALUE                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /users?notify=true HTTP/1.1                                  │
    │    Content-Type: application/json                                    │
    │                                                                      │
    │    {"name": "Ann", "age": 31}                                        │
    │                                                                      │
    │                          │ RequestBuilder                            │
    │                          ▼                                           │
    │                                                                      │
    │    Request(                                                          │
    │        method=Method.POST,                                           │
    │        path="/users",                 ← no query string              │
    │        headers={"Content-Type": ...}, ← keys exactly as received     │
    │        query={"notify": "true"},      ← decoded, last value wins     │
    │        body={"name": "Ann", "age": 31}← JSON object, or {}           │
    │    )                                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY IMMUTABLE?
=============================================================================

A Request is created once per dispatch and handed through every
middleware and finally to the handler. Nobody downstream may change what
somebody upstream already inspected, so:

- the dataclass is frozen (no attribute assignment)
- headers/query/body are read-only mapping proxies over private copies

Middleware that wants to pass a modified request downstream builds a new
one with ``dataclasses.replace(request, ...)``.

=============================================================================
LOOSELY TYPED BODY VALUES
=============================================================================

JSON values arrive as plain Python values (str, int/float, bool, None,
list, dict). Indexing ``request.body["age"]`` gives you whatever the
client sent. The typed accessors (get_str, get_number, ...) check the
JSON type and raise BodyTypeMismatch instead of silently coercing:

    request.get_number("age")   # 31
    request.get_str("age")      # BodyTypeMismatch: 'age' is number, not string

=============================================================================
RESPONSES ARE VALUES TOO
=============================================================================

A Response never changes after it is built. Middleware that adds a header
builds a new Response instead of mutating the one it got back from next():

    response = next(request)
    return response.with_headers({"X-Frame-Options": "DENY"})

The wire form of the body is computed on demand by the ``json`` property.
If the body cannot be serialized (a set, a datetime, NaN...), ``json`` is
None and the serializer leaves the body off the wire.

=============================================================================
"""

from collections import abc
from dataclasses import dataclass, field
import dataclasses
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional
import json
import logging


logger = logging.getLogger(__name__)


class Method(str, Enum):
    """
    HTTP methods the router can dispatch on.

    Closed set. The wire token is mapped onto it by the RequestBuilder,
    which also decides what to do with tokens outside the set.
    """
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"

    @classmethod
    def from_token(cls, token: str) -> Optional["Method"]:
        """
        Map a wire method token to a Method.

        Matching is exact: HTTP method tokens are case-sensitive, so
        "get" is not GET.

        Returns:
            The matching Method, or None for an unrecognized token
        """
        try:
            return cls(token)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.value


class BodyTypeMismatch(TypeError):
    """
    Raised by the typed body accessors when a value has the wrong JSON type.

    Carries the key and both type names so handlers can turn it into a
    useful 400 message.
    """

    def __init__(self, key: str, expected: str, actual: str):
        super().__init__(f"'{key}' is {actual}, not {expected}")
        self.key = key
        self.expected = expected
        self.actual = actual


def json_type_name(value: Any) -> str:
    """Name of the JSON type a decoded Python value came from."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return type(value).__name__


def _json_default(value: Any) -> Any:
    # json.dumps only knows dict; MappingProxyType and other mappings are not
    if isinstance(value, abc.Mapping):
        return dict(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


@dataclass(frozen=True)
class Request:
    """
    An inbound HTTP request.

    Attributes:
        method: Method enum member
        path: Path without query string, not normalized
        headers: Header name → value, names as received (case-sensitive)
        query: Decoded query parameter name → value
        body: Decoded JSON object body, empty when absent or not an object
    """

    method: Method
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    query: Mapping[str, str] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # Frozen dataclass: bypass __setattr__ to install read-only views
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "query", MappingProxyType(dict(self.query)))
        object.__setattr__(self, "body", MappingProxyType(dict(self.body)))

    # =========================================================================
    # HEADER AND QUERY ACCESS
    # =========================================================================

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a header value.

        An exact-case match wins. Otherwise the first header whose name
        matches case-insensitively is returned, since clients are free to
        send "content-type" for "Content-Type".

        Args:
            name: Header name
            default: Value to return if the header is absent

        Returns:
            Header value or default
        """
        if name in self.headers:
            return self.headers[name]
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    def query_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a decoded query parameter, or default."""
        return self.query.get(name, default)

    # =========================================================================
    # TYPED BODY ACCESSORS
    # =========================================================================
    #
    # A missing key or a JSON null returns the default. A present value of
    # the wrong JSON type raises BodyTypeMismatch.
    #
    # =========================================================================

    def get_str(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._typed(key, "string", default)

    def get_number(self, key: str, default: Optional[float] = None) -> Optional[float]:
        return self._typed(key, "number", default)

    def get_bool(self, key: str, default: Optional[bool] = None) -> Optional[bool]:
        return self._typed(key, "boolean", default)

    def get_list(self, key: str, default: Optional[List[Any]] = None) -> Optional[List[Any]]:
        return self._typed(key, "array", default)

    def get_object(self, key: str, default: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        return self._typed(key, "object", default)

    def _typed(self, key: str, expected: str, default: Any) -> Any:
        value = self.body.get(key)
        if value is None:
            return default
        actual = json_type_name(value)
        if actual != expected:
            raise BodyTypeMismatch(key, expected, actual)
        return value


@dataclass(frozen=True)
class Response:
    """
    An outbound HTTP response.

    Attributes:
        status_code: Any integer status, defaults to 200
        headers: Response headers; Content-Type is added by the serializer
            when absent
        body: JSON-serializable mapping, serialized on demand by ``json``

    Example:
        Response(201, body={"id": 7})
        Response(body={"ok": True}).with_headers({"Cache-Control": "no-store"})
    """

    status_code: int = 200
    headers: Mapping[str, str] = field(default_factory=dict)
    body: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))
        object.__setattr__(self, "body", MappingProxyType(dict(self.body)))

    @property
    def json(self) -> Optional[bytes]:
        """
        The body serialized as UTF-8 JSON.

        Nested mappings (such as a request's read-only ``body`` or
        ``query``) are written as objects. Otherwise serialization is
        strict: NaN/Infinity and values the json module does not know
        (sets, datetimes, arbitrary objects) fail.

        Returns:
            Encoded body, or None if the body is not serializable
        """
        try:
            text = json.dumps(
                dict(self.body), ensure_ascii=False, allow_nan=False, default=_json_default
            )
        except (TypeError, ValueError) as e:
            logger.error(f"Response body is not JSON-serializable: {e}")
            return None
        return text.encode("utf-8")

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a header value, matching the name case-insensitively."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return default

    # =========================================================================
    # COPY-ON-WRITE HELPERS
    # =========================================================================

    def with_headers(self, headers: Mapping[str, str]) -> "Response":
        """Return a copy with ``headers`` merged over the existing ones."""
        merged = dict(self.headers)
        merged.update(headers)
        return dataclasses.replace(self, headers=merged)

    def with_body(self, body: Mapping[str, Any]) -> "Response":
        """Return a copy with the body replaced."""
        return dataclasses.replace(self, body=body)

    def replace(self, **changes: Any) -> "Response":
        """Return a copy with any of status_code/headers/body replaced."""
        return dataclasses.replace(self, **changes)
