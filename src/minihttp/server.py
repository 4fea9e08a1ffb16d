"""
=============================================================================
SERVERS
=============================================================================

A server turns a handler (HTTPRequest → HTTPResponse) into something a
client can reach. Two pieces describe every transport:

    ServerCreator.create(handler) ──► HTTPServer
                                        .start()   begin serving
                                        .port      where it listens
                                        .close()   stop serving

The socket transport lives here; the in-memory one in minihttp.memory.

=============================================================================
SOCKET TRANSPORT
=============================================================================

    SocketServer (accept loop, background thread)
        │  Connection
        ▼
    ThreadPool.submit(_process_connection)
        │
        ▼  per request on the connection
    ┌─────────────────────────────────────────────────────────────────────┐
    │  conn.read_request()         bytes of one request                   │
    │  RequestParser.parse()       HTTPParseError → status answer, close  │
    │  handler(request)            exception → 500, close                 │
    │  response.iter_bytes()       HEAD → head only, failure → 500        │
    │  keep-alive?                 loop : close                           │
    └─────────────────────────────────────────────────────────────────────┘

The handler is wrapped with the access log and gzip middleware when the
ServerConfig asks for them.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import Iterator, Optional
import itertools
import logging
import threading

from .config import ServerConfig
from .core import Connection, SocketServer, ThreadPool
from .http import (
    HTTPMethod,
    HTTPParseError,
    HTTPRequest,
    HTTPResponse,
    HTTPStatus,
    RequestParser,
    ResponseBuilder,
)
from .http.router import Handler
from .middleware import access_log, gzip


logger = logging.getLogger(__name__)


# =============================================================================
# TRANSPORT CONTRACT
# =============================================================================


class HTTPServer(ABC):
    """A running (or runnable) server for one handler."""

    @property
    @abstractmethod
    def port(self) -> int:
        """The port clients connect to."""

    @abstractmethod
    def start(self) -> "HTTPServer":
        """Begin serving. Returns self so `with creator.create(h).start():` reads well."""

    @abstractmethod
    def close(self) -> None:
        """Stop serving and release resources."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class ServerCreator(ABC):
    """Factory for one kind of HTTPServer."""

    @abstractmethod
    def create(self, handler: Handler) -> HTTPServer:
        ...


# =============================================================================
# SOCKET TRANSPORT
# =============================================================================


class SocketServerCreator(ServerCreator):
    """
    Creates SocketHTTPServers sharing one ServerConfig.

        creator = SocketServerCreator(ServerConfig(port=0))
        with creator.create(router).start() as server:
            urlopen(f"http://127.0.0.1:{server.port}/ping")
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

    def create(self, handler: Handler) -> "SocketHTTPServer":
        return SocketHTTPServer(handler, self.config)


class SocketHTTPServer(HTTPServer):
    """
    HTTP/1.1 over plain TCP, one worker thread per active connection.

    start() binds, then runs the accept loop on a background thread and
    returns. serve_forever() runs it on the calling thread instead, with
    SIGINT / SIGTERM triggering a graceful shutdown.
    """

    def __init__(self, handler: Handler, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self._listener = SocketServer(self.config)
        self._pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._handler = self._wrap(handler)
        self._thread: Optional[threading.Thread] = None
        self._running = False

    def _wrap(self, handler: Handler) -> Handler:
        if self.config.gzip:
            handler = gzip(handler)
        if self.config.access_log:
            handler = access_log(handler, log_format=self.config.log_format)
        return handler

    @property
    def port(self) -> int:
        return self._listener.address[1]

    @property
    def host(self) -> str:
        return self._listener.address[0]

    @property
    def url(self) -> str:
        return f"http://{self.host}:{self.port}"

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> "SocketHTTPServer":
        if self._running:
            return self
        self._listener.bind()
        self._pool.start()
        self._running = True
        self._thread = threading.Thread(
            target=self._listener.serve,
            args=(self._on_connection,),
            name="minihttp-accept",
            daemon=True,
        )
        self._thread.start()
        logger.info(f"Serving on {self.url}")
        return self

    def serve_forever(self):
        """Serve on the current thread until close() or a signal."""
        self._listener.bind()
        self._pool.start()
        self._running = True
        logger.info(f"Serving on {self.url}")
        try:
            self._listener.serve(self._on_connection, install_signal_handlers=True)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def close(self):
        if not self._running:
            self._listener.close_socket()
            return
        self._listener.shutdown()
        if self._thread is not None:
            self._listener.wait_for_shutdown(timeout=5.0)
            self._thread.join(timeout=5.0)
            self._thread = None
        self._shutdown()

    def _shutdown(self):
        if not self._running:
            return
        logger.info("Shutting down server...")
        self._running = False
        self._pool.shutdown(wait=True, timeout=self.config.timeout)
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def _on_connection(self, conn: Connection):
        """Runs on the accept thread: hand the connection to a worker."""
        try:
            submitted = self._pool.submit(
                self._process_connection,
                args=(conn,),
                queue_timeout=self.config.timeout,
            )
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Worker pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs on a worker)."""
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                except HTTPParseError as e:
                    self._send_error(conn, e.status_code, str(e))
                    break
                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break
                if raw_request is None:
                    break

                try:
                    request = self._parser.parse(raw_request, conn.address)
                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Rejected request: {e.status_code} {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                if not self._respond(conn, request):
                    break
                conn.set_keep_alive()

    def _respond(self, conn: Connection, request: HTTPRequest) -> bool:
        """
        Run the handler and write its response.

        Returns:
            True if the connection may serve another request.
        """
        try:
            response = self._handler(request)
            failed = False
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error on {request.method} {request.uri}: {e}")
            response = HTTPResponse.of(HTTPStatus.INTERNAL_SERVER_ERROR)
            failed = True

        keep_alive = (
            not failed
            and self.config.keep_alive
            and request.is_keep_alive
            and (response.header("connection") or "").lower() != "close"
        )
        try:
            chunks = self._serialize(response, request, keep_alive)
            head = next(chunks)
        except Exception as e:
            logger.exception(f"[{conn.id}] Cannot serialize response to {request.method} {request.uri}: {e}")
            response.body.close()
            response = HTTPResponse.of(HTTPStatus.INTERNAL_SERVER_ERROR)
            keep_alive = False
            chunks = self._serialize(response, request, keep_alive)
            head = next(chunks)

        try:
            sent = conn.send(itertools.chain((head,), chunks))
        except Exception as e:
            # Head already sent: all that is left is to drop the connection.
            logger.exception(f"[{conn.id}] Response body failed for {request.method} {request.uri}: {e}")
            sent = False
        finally:
            response.body.close()
        return sent and keep_alive

    def _serialize(self, response: HTTPResponse, request: HTTPRequest, keep_alive: bool) -> Iterator[bytes]:
        return response.iter_bytes(
            self.config.server_name,
            include_body=request.method is not HTTPMethod.HEAD,
            connection="keep-alive" if keep_alive else "close",
        )

    def _send_error(self, conn: Connection, status: int, message: str):
        """Answer a request that never reached the handler."""
        response = (ResponseBuilder()
            .status(status)
            .json({"error": message})
            .close_connection()
            .build())
        conn.send(response.iter_bytes(self.config.server_name))
