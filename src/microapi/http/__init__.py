"""
=============================================================================
HTTP PACKAGE
=============================================================================

The dispatch core, independent of sockets:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ models.py           Method, Request, Response (immutable values)    │
    │ request_builder.py  head + body chunks → Request                    │
    │ router.py           (path, method) → handler, 404 on a miss         │
    │ dispatch.py         middleware chain around the router (imported    │
    │                     directly: it depends on microapi.middleware)    │
    │ serializer.py       Response → write_head / write_body / write_end  │
    │ response.py         ok(), created(), not_found(), ...               │
    │ status_codes.py     HTTPStatus and reason phrases                   │
    └─────────────────────────────────────────────────────────────────────┘

    RequestHead ──► RequestBuilder ──► Request
                                          │
                                          ▼
                              DispatchHandler (middleware → Router)
                                          │
                                          ▼
                     Response ──► ResponseSerializer ──► ResponseWriter

=============================================================================
"""

from .models import Method, Request, Response, BodyTypeMismatch
from .request_builder import RequestBuilder, RequestHead, UnknownMethodPolicy
from .router import Router, Route, Handler
from .serializer import ResponseSerializer, ResponseWriter
from .response import (
    ok,               # 200 OK
    created,          # 201 Created
    no_content,       # 204 No Content
    bad_request,      # 400 Bad Request
    invalid_request,  # 400 {"error": "Invalid request"}
    not_found,        # 404 {"error": "Not found"}
    internal_error,   # 500 Internal Server Error
)
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Model
    "Method",
    "Request",
    "Response",
    "BodyTypeMismatch",

    # Request building
    "RequestBuilder",
    "RequestHead",
    "UnknownMethodPolicy",

    # Routing
    "Router",
    "Route",
    "Handler",

    # Serialization
    "ResponseSerializer",
    "ResponseWriter",

    # Response helpers
    "ok",
    "created",
    "no_content",
    "bad_request",
    "invalid_request",
    "not_found",
    "internal_error",

    # Status codes
    "HTTPStatus",
    "reason_phrase",
]
