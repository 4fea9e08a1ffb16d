"""
=============================================================================
CORE NETWORKING
=============================================================================

The plumbing under the socket transport.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ SocketServer   listening socket, accept loop, signal handling       │
    └───────────────────────────────┬─────────────────────────────────────┘
                                    │ Connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ ThreadPool     bounded queue, min..max worker threads               │
    └───────────────────────────────┬─────────────────────────────────────┘
                                    │ worker runs the keep-alive loop
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │ Connection     buffered request reads, chunk writes, orderly close  │
    └─────────────────────────────────────────────────────────────────────┘

None of these know about routing; minihttp.server glues them to a handler.

=============================================================================
"""

from .connection import Connection, ConnectionState
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "ThreadPool",
]
