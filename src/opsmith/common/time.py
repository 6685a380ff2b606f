from __future__ import annotations

import datetime


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(tz=datetime.timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()
