import json
import threading
from pathlib import Path

from opsmith.reporting.audit import AUDIT_SCHEMA_VERSION, AuditEvent, AuditLogger
from opsmith.slave.protocol import Command, err, ok


def test_event_fields():
    ev = AuditEvent.make(
        request_id="req-1",
        peer="127.0.0.1:5555",
        index=2,
        command=Command(name="ReadFile", args=["/tmp/a"]),
        response=ok("héllo"),
        duration_ms=7,
    )
    d = ev.to_jsonl_dict()
    assert d["schema_version"] == AUDIT_SCHEMA_VERSION
    assert d["command"] == "ReadFile"
    assert d["args"] == ["/tmp/a"]
    assert d["status"] == 0
    assert d["error"] == ""
    assert d["data_bytes"] == len("héllo".encode("utf-8"))
    assert d["timestamp"].endswith("+00:00")


def test_concurrent_appends_stay_line_aligned(tmp_path: Path):
    log = AuditLogger(tmp_path / "nested" / "audit.jsonl")

    def _write(t: int):
        for i in range(50):
            log.log(
                AuditEvent.make(
                    request_id=f"req-{t}",
                    peer="p",
                    index=i,
                    command=Command(name="Foo", args=["x" * 100]),
                    response=err("primitive Foo is not implemented"),
                    duration_ms=0,
                )
            )

    threads = [threading.Thread(target=_write, args=(t,)) for t in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    lines = log.path.read_text(encoding="utf-8").splitlines()
    rows = [json.loads(line) for line in lines]
    assert len(rows) == 200
    assert all(r["status"] == -1 for r in rows)
