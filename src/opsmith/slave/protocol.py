from __future__ import annotations

import socket
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

# ==== Status codes (frozen) ====
STATUS_OK = 0
STATUS_ERROR = -1

# One frame = one JSON document terminated by a newline.
FRAME_DELIMITER = b"\n"
RECV_CHUNK = 4096
DEFAULT_MAX_PAYLOAD_BYTES = 1024 * 1024


class ProtocolError(ValueError):
    """Inbound bytes do not form a valid message."""


class PayloadTooLargeError(ProtocolError):
    def __init__(self, limit: int) -> None:
        super().__init__(f"payload too large: request exceeds {limit} bytes")
        self.limit = limit


class Command(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str
    args: Tuple[str, ...]


class Batch(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    commands: List[Command]


class Response(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    data: str
    error: str
    status: int

    @model_validator(mode="after")
    def _status_matches_error(self) -> "Response":
        if self.status not in (STATUS_OK, STATUS_ERROR):
            raise ValueError(f"status must be {STATUS_OK} or {STATUS_ERROR}, got {self.status}")
        if (self.status == STATUS_ERROR) != (self.error != ""):
            raise ValueError("status is -1 exactly when error is non-empty")
        return self


class BatchResponse(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    results: List[Response]
    status: int
    # Only set on a rejection frame; omitted from the wire otherwise.
    error: Optional[str] = None

    @model_validator(mode="after")
    def _aggregate_status(self) -> "BatchResponse":
        if self.error is not None:
            if self.status != STATUS_ERROR:
                raise ValueError("a rejection frame must carry status -1")
            return self
        failed = any(r.status == STATUS_ERROR for r in self.results)
        if self.status != (STATUS_ERROR if failed else STATUS_OK):
            raise ValueError("status is -1 exactly when some result has status -1")
        return self

    @classmethod
    def from_results(cls, results: List[Response]) -> "BatchResponse":
        failed = any(r.status == STATUS_ERROR for r in results)
        return cls(results=list(results), status=STATUS_ERROR if failed else STATUS_OK)

    @classmethod
    def rejected(cls, message: str) -> "BatchResponse":
        return cls(results=[], status=STATUS_ERROR, error=message)

    @property
    def is_rejection(self) -> bool:
        return self.error is not None


def ok(data: str = "") -> Response:
    return Response(data=data, error="", status=STATUS_OK)


def err(message: str) -> Response:
    return Response(data="", error=message, status=STATUS_ERROR)


def encode_frame(message: BaseModel) -> bytes:
    return message.model_dump_json(exclude_none=True).encode("utf-8") + FRAME_DELIMITER


def _decode(model: type, payload: bytes, what: str):
    payload = payload.strip()
    if not payload:
        raise ProtocolError(f"empty {what} payload")
    try:
        return model.model_validate_json(payload)
    except ValidationError as e:
        raise ProtocolError(f"invalid {what} payload: {e}") from e


def decode_batch(payload: bytes) -> Batch:
    return _decode(Batch, payload, "batch")


def decode_batch_response(payload: bytes) -> BatchResponse:
    return _decode(BatchResponse, payload, "batch response")


def read_frame(sock: socket.socket, *, max_bytes: Optional[int] = None) -> bytes:
    """Read one newline-framed message from ``sock``.

    Reads until the delimiter or EOF, whichever comes first, and returns the
    frame without its delimiter. Bytes after the delimiter are discarded
    (one request per connection).

    Raises PayloadTooLargeError once more than ``max_bytes`` arrive without a
    delimiter, and lets OSError (including socket.timeout) propagate.
    """
    chunks: List[bytes] = []
    size = 0
    while True:
        chunk = sock.recv(RECV_CHUNK)
        if not chunk:
            break
        # The delimiter is one byte, so only the newest chunk can hold it.
        idx = chunk.find(FRAME_DELIMITER)
        if idx >= 0:
            chunks.append(chunk[:idx])
            size += idx
            break
        chunks.append(chunk)
        size += len(chunk)
        if max_bytes is not None and size > max_bytes:
            raise PayloadTooLargeError(max_bytes)
    if max_bytes is not None and size > max_bytes:
        raise PayloadTooLargeError(max_bytes)
    return b"".join(chunks)
