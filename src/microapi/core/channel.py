"""
=============================================================================
HTTP CHANNEL HANDLER
=============================================================================

The per-connection driver between the socket and the dispatch core.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                  ONE REQUEST ON A CONNECTION                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   conn.read_head()  ──► on_head(head)   builder.set_head             │
    │   conn.iter_body()  ──► on_body(chunk)  builder.append_body  (×N)    │
    │   end of message    ──► on_end(writer)                               │
    │                            │                                         │
    │                            ├── builder.build()                       │
    │                            ├── dispatcher.handle(request)            │
    │                            ├── serializer.serialize(response, writer)│
    │                            └── builder.reset()                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

serve() repeats that for every request on the connection while the
client asks for keep-alive, then closes the socket.

An exception that escapes the middleware chain is logged here and the
client gets 500 {"error": "Internal server error"}; the connection stays
usable.

=============================================================================
"""

import logging
from typing import Callable, Optional

from ..http.dispatch import DispatchHandler
from ..http.models import Response
from ..http.request_builder import RequestBuilder, RequestHead, UnknownMethodPolicy
from ..http.response import internal_error
from ..http.serializer import ResponseSerializer, ResponseWriter
from .connection import (
    Connection,
    ConnectionState,
    ConnectionWriter,
    HTTPParseError,
    should_keep_alive,
)


logger = logging.getLogger(__name__)


class HTTPChannelHandler:
    """
    Feeds one connection's events through builder, dispatcher and serializer.

    Args:
        dispatcher: The application's composed DispatchHandler
        unknown_method_policy: Passed to this connection's RequestBuilder
        keep_alive: Whether the server allows persistent connections
        is_running: Polled between requests; False ends serve()
    """

    def __init__(
        self,
        dispatcher: DispatchHandler,
        unknown_method_policy: UnknownMethodPolicy = UnknownMethodPolicy.FALLBACK_TO_GET,
        keep_alive: bool = True,
        is_running: Optional[Callable[[], bool]] = None,
        serializer: Optional[ResponseSerializer] = None,
    ):
        self.dispatcher = dispatcher
        self.builder = RequestBuilder(unknown_method_policy)
        self.serializer = serializer or ResponseSerializer()
        self.keep_alive = keep_alive
        self.is_running = is_running or (lambda: True)

    # =========================================================================
    # EVENTS
    # =========================================================================

    def on_head(self, head: RequestHead) -> None:
        self.builder.set_head(head)

    def on_body(self, chunk: bytes) -> None:
        self.builder.append_body(chunk)

    def on_end(self, writer: ResponseWriter) -> Response:
        """
        Finish the current request: dispatch it and write the response.

        Returns:
            The response that was written
        """
        try:
            request = self.builder.build()
            try:
                response = self.dispatcher.handle(request)
            except Exception as e:
                logger.exception(f"Unhandled error while dispatching: {e}")
                response = internal_error()
            self.serializer.serialize(response, writer)
            return response
        finally:
            self.builder.reset()

    # =========================================================================
    # CONNECTION LOOP
    # =========================================================================

    def serve(self, conn: Connection) -> None:
        """
        Handle requests on ``conn`` until it closes. Runs in a worker thread.
        """
        with conn:
            while self.is_running():
                try:
                    head = conn.read_head()
                    if head is None:
                        break

                    self.on_head(head)
                    for chunk in conn.iter_body():
                        self.on_body(chunk)
                except HTTPParseError as e:
                    logger.warning(f"[{conn.id}] Bad request from {conn.client_ip}: {e.message}")
                    conn.send_error(e.status_code, e.message)
                    break
                except ConnectionError as e:
                    logger.debug(f"[{conn.id}] {e}")
                    break

                keep_alive = self.keep_alive and should_keep_alive(head)
                conn.state = ConnectionState.PROCESSING
                writer = ConnectionWriter(conn, keep_alive=keep_alive)
                self.on_end(writer)
                conn.requests_handled += 1

                if not writer.sent or not keep_alive:
                    break
                conn.state = ConnectionState.KEEP_ALIVE
