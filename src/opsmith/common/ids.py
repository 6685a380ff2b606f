from __future__ import annotations

import uuid


def make_request_id(prefix: str = "req", n: int = 12) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:n]}"
