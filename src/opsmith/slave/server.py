from __future__ import annotations

import logging
import socket
import threading
from typing import Optional, Tuple

from opsmith.common.ids import make_request_id
from opsmith.reporting.audit import AuditEvent, AuditLogger

from .executor import run_batch
from .protocol import (
    DEFAULT_MAX_PAYLOAD_BYTES,
    BatchResponse,
    Command,
    RECV_CHUNK,
    STATUS_OK,
    PayloadTooLargeError,
    ProtocolError,
    Response,
    decode_batch,
    encode_frame,
    read_frame,
)
from .registry import PrimitiveRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONNECTIONS = 64
ACCEPT_POLL_S = 0.5
DRAIN_TIMEOUT_S = 1.0


class SlaveServer:
    """TCP slave: one request per connection, one thread per connection.

    At most ``max_connections`` connections are handled at once (0 means no
    limit); further peers wait in the listen backlog until a slot frees up.
    """

    def __init__(
        self,
        host: str,
        port: int,
        registry: PrimitiveRegistry,
        *,
        max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
        max_connections: int = DEFAULT_MAX_CONNECTIONS,
        read_timeout_s: Optional[float] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.registry = registry
        self.max_payload_bytes = max_payload_bytes
        self.read_timeout_s = read_timeout_s
        self.audit = audit
        self._slots = threading.BoundedSemaphore(max_connections) if max_connections > 0 else None
        self._stop = threading.Event()
        self._sock: Optional[socket.socket] = None
        self._address: Tuple[str, int] = (host, port)

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); reports the real port when bound to port 0."""
        return self._address

    def bind(self) -> None:
        if self._sock is not None:
            return
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            s.bind((self.host, self.port))
            s.listen()
            s.settimeout(ACCEPT_POLL_S)
        except OSError:
            s.close()
            raise
        self._sock = s
        self._address = s.getsockname()[:2]

    def stop(self) -> None:
        self._stop.set()
        if self._sock is not None:
            try:
                self._sock.close()
            except OSError:
                pass

    def _release(self) -> None:
        if self._slots is not None:
            self._slots.release()

    def _send(self, conn: socket.socket, payload: bytes, request_id: str) -> None:
        try:
            conn.sendall(payload)
        except OSError as e:
            logger.warning("[%s] write failed: %s", request_id, e)

    def _drain(self, conn: socket.socket) -> None:
        # Consume what the peer is still sending so close() does not reset the
        # connection before it reads the rejection frame.
        try:
            conn.shutdown(socket.SHUT_WR)
            conn.settimeout(DRAIN_TIMEOUT_S)
            while conn.recv(RECV_CHUNK):
                pass
        except OSError:
            pass

    def _audit_hook(self, request_id: str, peer: str):
        audit = self.audit
        if audit is None:
            return None

        def _hook(index: int, command: Command, response: Response, duration_ms: int) -> None:
            ev = AuditEvent.make(
                request_id=request_id,
                peer=peer,
                index=index,
                command=command,
                response=response,
                duration_ms=duration_ms,
            )
            try:
                audit.log(ev)
            except OSError as e:
                logger.warning("[%s] audit log write failed: %s", request_id, e)

        return _hook

    def handle(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        """Read one batch, execute it, write one response, close."""
        request_id = make_request_id()
        peer = f"{addr[0]}:{addr[1]}"
        with conn:
            conn.settimeout(self.read_timeout_s)
            try:
                payload = read_frame(conn, max_bytes=self.max_payload_bytes)
            except PayloadTooLargeError as e:
                logger.warning("[%s] rejected request from %s: %s", request_id, peer, e)
                self._send(conn, encode_frame(BatchResponse.rejected(str(e))), request_id)
                self._drain(conn)
                return
            except socket.timeout:
                logger.warning(
                    "[%s] timed out waiting for request from %s (request must be newline-terminated)", request_id, peer
                )
                return
            except OSError as e:
                logger.warning("[%s] read from %s failed: %s", request_id, peer, e)
                return

            try:
                batch = decode_batch(payload)
            except ProtocolError as e:
                # No error frame: the peer observes a closed connection.
                logger.warning("[%s] dropping malformed request from %s: %s", request_id, peer, e)
                return

            logger.info("[%s] %s submitted %d command(s)", request_id, peer, len(batch.commands))
            resp = run_batch(batch, self.registry, on_result=self._audit_hook(request_id, peer))
            failed = sum(1 for r in resp.results if r.status != STATUS_OK)
            logger.info("[%s] batch done: status=%d failed=%d/%d", request_id, resp.status, failed, len(resp.results))

            self._send(conn, encode_frame(resp), request_id)

    def _handle_and_release(self, conn: socket.socket, addr: Tuple[str, int]) -> None:
        try:
            self.handle(conn, addr)
        except Exception:
            logger.exception("Connection handler for %s crashed", addr)
        finally:
            self._release()

    def serve_forever(self) -> None:
        self.bind()
        s = self._sock
        assert s is not None
        host, port = self.address
        logger.info("slave listening on %s:%d (%d primitives)", host, port, len(self.registry))

        with s:
            while not self._stop.is_set():
                if self._slots is not None and not self._slots.acquire(timeout=ACCEPT_POLL_S):
                    continue
                try:
                    conn, addr = s.accept()
                except socket.timeout:
                    self._release()
                    continue
                except OSError as e:
                    self._release()
                    if self._stop.is_set():
                        break
                    logger.error("accept failed: %s", e)
                    continue
                threading.Thread(target=self._handle_and_release, args=(conn, addr), daemon=True).start()

        logger.info("slave shutdown complete")
