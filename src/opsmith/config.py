from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from opsmith.slave.primitives import DEFAULT_SHELL
from opsmith.slave.protocol import DEFAULT_MAX_PAYLOAD_BYTES
from opsmith.slave.server import DEFAULT_MAX_CONNECTIONS


@dataclass(frozen=True)
class Settings:
    host: str
    port: int
    log_level: str
    max_payload_bytes: int
    max_connections: int
    read_timeout_s: Optional[float]
    client_timeout_s: float
    shell: str
    audit_log: Optional[Path]
    slave_config: Optional[Path]


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default)).strip()
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name, "").strip()
    return Path(raw) if raw else None


def load_settings() -> Settings:
    load_dotenv(find_dotenv(usecwd=True), override=False)

    host = os.getenv("OPSMITH_HOST", "127.0.0.1")
    port = _env_int("OPSMITH_PORT", 9000)
    log_level = os.getenv("OPSMITH_LOG_LEVEL", "INFO").upper()
    max_payload_bytes = _env_int("OPSMITH_MAX_PAYLOAD_BYTES", DEFAULT_MAX_PAYLOAD_BYTES)
    max_connections = _env_int("OPSMITH_MAX_CONNECTIONS", DEFAULT_MAX_CONNECTIONS)
    read_timeout_s = _env_float("OPSMITH_READ_TIMEOUT_S", 30.0)
    client_timeout_s = _env_float("OPSMITH_CLIENT_TIMEOUT_S", 120.0)
    shell = os.getenv("OPSMITH_SHELL", DEFAULT_SHELL).strip() or DEFAULT_SHELL

    if not 0 < port < 65536:
        raise ValueError(f"OPSMITH_PORT out of range: {port}")
    if max_payload_bytes <= 0:
        raise ValueError("OPSMITH_MAX_PAYLOAD_BYTES must be positive")
    if max_connections < 0:
        raise ValueError("OPSMITH_MAX_CONNECTIONS must be >= 0 (0 = unbounded)")

    return Settings(
        host=host,
        port=port,
        log_level=log_level,
        max_payload_bytes=max_payload_bytes,
        max_connections=max_connections,
        read_timeout_s=read_timeout_s if read_timeout_s > 0 else None,
        client_timeout_s=client_timeout_s,
        shell=shell,
        audit_log=_env_path("OPSMITH_AUDIT_LOG"),
        slave_config=_env_path("OPSMITH_SLAVE_CONFIG"),
    )
