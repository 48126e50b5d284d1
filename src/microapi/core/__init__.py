"""
=============================================================================
CORE: THE SOCKET TRANSPORT
=============================================================================

Everything that touches sockets and threads:

    ┌─────────────────────────────────────────────────────────────────────┐
    │ socket_server.py   bind / listen / accept loop, signal handling     │
    │ thread_pool.py     worker threads, bounded queue                    │
    │ connection.py      bytes ⇄ RequestHead + body chunks, HTTP/1.1 out  │
    │ channel.py         per-connection driver into the dispatch core     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, ConnectionWriter, HTTPParseError
from .thread_pool import ThreadPool
from .channel import HTTPChannelHandler

__all__ = [
    "SocketServer",        # Accepts connections
    "Connection",          # Framing over one client socket
    "ConnectionState",     # Connection lifecycle states
    "ConnectionWriter",    # ResponseWriter that sends over a Connection
    "HTTPParseError",      # Unframeable request, carries the status to send
    "ThreadPool",          # Worker threads
    "HTTPChannelHandler",  # Per-connection request loop
]
