"""
=============================================================================
TCP LISTENER
=============================================================================

Owns the listening socket and the accept loop. Knows nothing about HTTP:
every accepted client is wrapped in a Connection and handed to a callback.

    bind()    socket() + setsockopt() + bind() + listen()
      │       the OS picks the port when config.port == 0;
      │       `address` reports what was actually bound
      ▼
    serve(on_connection)
      │       accept() with a short timeout so shutdown() is noticed
      │       ──► Connection(...) ──► on_connection(conn)
      ▼
    shutdown()            from any thread, or from SIGINT / SIGTERM
      │
      ▼
    listening socket closed, stopped event set

=============================================================================
SOCKET OPTIONS
=============================================================================

    SO_REUSEADDR   rebind right after a restart (no TIME_WAIT wait)
    TCP_NODELAY    small responses leave immediately

Signal handlers can only be installed from the main thread. When serve()
runs on a background thread, as SocketHTTPServer.start() does, shutdown
is driven by close() instead.

=============================================================================
"""

from typing import Callable, Dict, Optional, Tuple
import logging
import signal
import socket
import threading

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)

ACCEPT_POLL_INTERVAL = 0.5

ConnectionCallback = Callable[[Connection], None]


class SocketServer:
    """
    Accepts TCP connections and passes them on.

        listener = SocketServer(config)
        listener.bind()
        print(listener.address)          # ("127.0.0.1", 54321)
        listener.serve(handle)           # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._address: Optional[Tuple[str, int]] = None
        self._running = False
        self._stopped = threading.Event()
        self._original_handlers: Dict[int, object] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (host, port), or the configured one before bind()."""
        if self._address is not None:
            return self._address
        return (self.config.host, self.config.port)

    # =========================================================================
    # SETUP
    # =========================================================================

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def bind(self) -> Tuple[str, int]:
        """
        Bind and listen. Calling it twice is a no-op.

        Returns:
            The address actually bound.

        Raises:
            OSError: if the address cannot be bound.
        """
        if self._socket is not None:
            return self.address

        sock = self._create_socket()
        try:
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError as e:
            sock.close()
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            raise

        self._socket = sock
        self._address = sock.getsockname()[:2]
        self._stopped.clear()
        logger.info(f"Listening on {self._address[0]}:{self._address[1]}")
        return self._address

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def serve(self, on_connection: ConnectionCallback, install_signal_handlers: bool = False):
        """
        Accept connections until shutdown(). Binds first if needed.

        Args:
            on_connection: called with every accepted Connection; it owns
                the connection from then on.
            install_signal_handlers: stop on SIGINT / SIGTERM (main thread only).
        """
        self.bind()
        self._running = True
        if install_signal_handlers:
            self._setup_signals()

        try:
            self._accept_loop(on_connection)
        finally:
            self._cleanup()

    def _accept_loop(self, on_connection: ConnectionCallback):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")
            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                keep_alive_timeout=self.config.keep_alive_timeout,
                max_request_size=self.config.max_request_size,
            )
            on_connection(conn)

    # =========================================================================
    # SHUTDOWN
    # =========================================================================

    def shutdown(self):
        """Stop accepting. Safe to call more than once and from any thread."""
        if self._running:
            logger.info("Shutting down listener...")
        self._running = False

    def _cleanup(self):
        self._running = False
        self._restore_signals()
        self.close_socket()
        self._stopped.set()
        logger.info("Listener stopped")

    def close_socket(self):
        """Close the listening socket, e.g. when bind() succeeded but serve() never ran."""
        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the accept loop has exited.

        Returns:
            False if the timeout ran out first.
        """
        return self._stopped.wait(timeout)
