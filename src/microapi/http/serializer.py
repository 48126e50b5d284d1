"""
=============================================================================
RESPONSE SERIALIZER
=============================================================================

Turns a Response into the three writes the transport understands:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   Response(200, {"X-Id": "7"}, {"ok": true})                         │
    │        │                                                             │
    │        ▼                                                             │
    │   write_head(200, {"Content-Type": "application/json", "X-Id": "7"}) │
    │   write_body(b'{"ok": true}')       ← skipped if json is None        │
    │   write_end()                                                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each write is attempted on its own. If write_head fails the error is
logged and write_body/write_end are still attempted, so a transport that
recovers mid-response (or that just needs end to release resources)
always sees the end marker.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Dict, Mapping
import logging

from .models import Response


logger = logging.getLogger(__name__)


DEFAULT_CONTENT_TYPE = "application/json"


class ResponseWriter(ABC):
    """
    The transport side of serialization.

    Implemented by core.connection.ConnectionWriter for sockets and by
    recording writers in tests.
    """

    @abstractmethod
    def write_head(self, status_code: int, headers: Mapping[str, str]) -> None:
        """Write the status line and headers."""

    @abstractmethod
    def write_body(self, data: bytes) -> None:
        """Write body bytes."""

    @abstractmethod
    def write_end(self) -> None:
        """Mark the response complete."""


def effective_headers(response: Response) -> Dict[str, str]:
    """
    Headers as they go on the wire.

    Content-Type defaults to application/json; any Content-Type the
    response sets (in any letter case) is kept instead.
    """
    headers: Dict[str, str] = {}
    if not any(name.lower() == "content-type" for name in response.headers):
        headers["Content-Type"] = DEFAULT_CONTENT_TYPE
    headers.update(response.headers)
    return headers


class ResponseSerializer:
    """Writes Responses to a ResponseWriter."""

    def serialize(self, response: Response, writer: ResponseWriter) -> None:
        """
        Write one response: head, body (when serializable), end.

        Never raises for write failures; they are logged.

        Args:
            response: The response to write
            writer: Destination for the writes
        """
        try:
            writer.write_head(response.status_code, effective_headers(response))
        except Exception as e:
            logger.error(f"Failed to write response head: {e}")

        body = response.json
        if body is None:
            logger.error(f"Omitting unserializable body of {response.status_code} response")
        else:
            try:
                writer.write_body(body)
            except Exception as e:
                logger.error(f"Failed to write response body: {e}")

        try:
            writer.write_end()
        except Exception as e:
            logger.error(f"Failed to end response: {e}")
