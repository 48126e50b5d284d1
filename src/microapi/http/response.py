"""
=============================================================================
RESPONSE HELPERS
=============================================================================

Shortcuts for the responses handlers return most often.

    from microapi.http.response import ok, created, not_found

    def get_user(request):
        user = users.get(request.query_param("id"))
        if user is None:
            return not_found()
        return ok(user)

Every helper returns a plain Response, so the result can still be
adjusted with ``with_headers``/``with_body``/``replace``.

=============================================================================
FIXED FRAMEWORK BODIES
=============================================================================

Two bodies are produced by the framework itself and are part of the wire
contract, so they are exact:

    not_found()        → 404 {"error": "Not found"}
    invalid_request()  → 400 {"error": "Invalid request"}

=============================================================================
"""

from typing import Any, Mapping, Optional

from .models import Response
from .status_codes import HTTPStatus


NOT_FOUND_MESSAGE = "Not found"
INVALID_REQUEST_MESSAGE = "Invalid request"
INTERNAL_ERROR_MESSAGE = "Internal server error"


def ok(body: Optional[Mapping[str, Any]] = None) -> Response:
    """Create a 200 OK response."""
    return Response(HTTPStatus.OK, body=body or {})


def created(body: Optional[Mapping[str, Any]] = None, location: Optional[str] = None) -> Response:
    """
    Create a 201 Created response.

    Used after creating a resource (POST). The optional Location header
    points at the new resource.

    Args:
        body: Usually the created resource
        location: URL of the created resource

    Returns:
        Response with 201 status
    """
    headers = {"Location": location} if location else {}
    return Response(HTTPStatus.CREATED, headers=headers, body=body or {})


def no_content() -> Response:
    """
    Create a 204 No Content response.

    The body mapping is empty; the serializer still writes ``{}`` since
    every body is JSON, and the transport drops it for 204.
    """
    return Response(HTTPStatus.NO_CONTENT)


def bad_request(message: str = "Bad request") -> Response:
    return error_response(HTTPStatus.BAD_REQUEST, message)


def not_found(message: str = NOT_FOUND_MESSAGE) -> Response:
    """Create a 404 response. The default body is the router's miss body."""
    return error_response(HTTPStatus.NOT_FOUND, message)


def invalid_request() -> Response:
    """The fixed 400 sent when the request could not be built."""
    return error_response(HTTPStatus.BAD_REQUEST, INVALID_REQUEST_MESSAGE)


def internal_error(message: Optional[str] = None) -> Response:
    """
    Create a 500 Internal Server Error response.

    Args:
        message: Optional detail, added under "message"

    Returns:
        Response with body {"error": "Internal server error"[, "message": ...]}
    """
    body = {"error": INTERNAL_ERROR_MESSAGE}
    if message is not None:
        body["message"] = message
    return Response(HTTPStatus.INTERNAL_SERVER_ERROR, body=body)


def error_response(status_code: int, message: str) -> Response:
    """Create a response with body ``{"error": message}``."""
    return Response(status_code, body={"error": message})
