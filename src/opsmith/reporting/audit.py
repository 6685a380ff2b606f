from __future__ import annotations

import json
import threading
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List

from opsmith.common.time import utc_now_iso
from opsmith.slave.protocol import Command, Response

AUDIT_SCHEMA_VERSION = 1


@dataclass(frozen=True)
class AuditEvent:
    schema_version: int
    timestamp: str
    request_id: str
    peer: str

    # Command
    index: int
    command: str
    args: List[str]

    # Outcome
    status: int
    error: str
    duration_ms: int
    data_bytes: int

    @staticmethod
    def make(
        *,
        request_id: str,
        peer: str,
        index: int,
        command: Command,
        response: Response,
        duration_ms: int,
    ) -> "AuditEvent":
        return AuditEvent(
            schema_version=AUDIT_SCHEMA_VERSION,
            timestamp=utc_now_iso(),
            request_id=request_id,
            peer=peer,
            index=index,
            command=command.name,
            args=list(command.args),
            status=response.status,
            error=response.error,
            duration_ms=int(duration_ms),
            data_bytes=len(response.data.encode("utf-8")),
        )

    def to_jsonl_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AuditLogger:
    """Append-only JSONL log: one row per executed command.

    Connections run on separate threads, so appends are serialised.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def log(self, ev: AuditEvent) -> None:
        line = json.dumps(ev.to_jsonl_dict(), ensure_ascii=False) + "\n"
        with self._lock:
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line)

