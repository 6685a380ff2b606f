from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import Iterable, Optional

from opsmith.slave.protocol import (
    Batch,
    BatchResponse,
    Command,
    ProtocolError,
    decode_batch_response,
    encode_frame,
    read_frame,
)

# ==== Client-side error codes ====
E_NO_RESPONSE = "E_NO_RESPONSE"
E_TIMEOUT = "E_TIMEOUT"
E_BAD_RESP = "E_BAD_RESP"
E_REJECTED = "E_REJECTED"
E_CLIENT = "E_CLIENT"


class NoResponseError(Exception):
    pass


@dataclass(frozen=True)
class ClientResult:
    """Outcome of one round trip.

    ``ok`` means a BatchResponse came back; individual commands inside it may
    still have failed (``response.status == -1``). A connection closed with
    no data is a hard failure and never looks like a batch result.
    """

    ok: bool
    error_code: Optional[str]
    message: str
    response: Optional[BatchResponse]


class SlaveClient:
    def __init__(self, host: str, port: int, timeout_s: Optional[float]) -> None:
        self.host = host
        self.port = port
        self.timeout_s = timeout_s

    def _send_recv(self, payload: bytes) -> bytes:
        with socket.create_connection((self.host, self.port), timeout=self.timeout_s) as sock:
            sock.settimeout(self.timeout_s)
            sock.sendall(payload)
            frame = read_frame(sock)
        if not frame.strip():
            raise NoResponseError("slave closed the connection without a response")
        return frame

    def execute(self, batch: Batch) -> ClientResult:
        try:
            frame = self._send_recv(encode_frame(batch))
            resp = decode_batch_response(frame)
        except (socket.timeout, TimeoutError):
            return ClientResult(ok=False, error_code=E_TIMEOUT, message="Client timeout", response=None)
        except NoResponseError as e:
            return ClientResult(ok=False, error_code=E_NO_RESPONSE, message=str(e), response=None)
        except ProtocolError as e:
            return ClientResult(ok=False, error_code=E_BAD_RESP, message=str(e), response=None)
        except OSError as e:
            return ClientResult(ok=False, error_code=E_CLIENT, message=str(e), response=None)

        if resp.is_rejection:
            return ClientResult(ok=False, error_code=E_REJECTED, message=resp.error or "", response=resp)
        return ClientResult(ok=True, error_code=None, message="OK", response=resp)

    def run(self, commands: Iterable[Command]) -> ClientResult:
        return self.execute(Batch(commands=list(commands)))

    def call(self, name: str, *args: str) -> ClientResult:
        return self.run([Command(name=name, args=list(args))])
