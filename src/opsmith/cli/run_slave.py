from __future__ import annotations

import argparse
import logging
from pathlib import Path

from opsmith.cli.logging_setup import configure_logging
from opsmith.config import load_settings
from opsmith.reporting.audit import AuditLogger
from opsmith.slave.policy import load_policy
from opsmith.slave.registry import default_registry
from opsmith.slave.server import SlaveServer

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Run the opsmith slave (primitive execution server).")
    p.add_argument("--host", default="", help="Bind address (default: OPSMITH_HOST)")
    p.add_argument("--port", type=int, default=0, help="TCP port (default: OPSMITH_PORT)")
    p.add_argument("--config", default="", help="Primitive policy YAML (default: OPSMITH_SLAVE_CONFIG)")
    p.add_argument("--audit-log", default="", help="Append one JSONL row per executed command")
    args = p.parse_args(argv)

    s = load_settings()
    configure_logging(s.log_level)

    config_path = Path(args.config) if args.config else s.slave_config
    policy = load_policy(config_path)
    registry = default_registry(disabled=policy.disabled, shell=s.shell)

    audit_path = Path(args.audit_log) if args.audit_log else s.audit_log
    audit = AuditLogger(audit_path) if audit_path is not None else None

    server = SlaveServer(
        args.host or s.host,
        args.port or s.port,
        registry,
        max_payload_bytes=s.max_payload_bytes,
        max_connections=s.max_connections,
        read_timeout_s=s.read_timeout_s,
        audit=audit,
    )
    if s.max_connections == 0:
        logger.warning("OPSMITH_MAX_CONNECTIONS=0: concurrent connections are unbounded")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("KeyboardInterrupt -> stopping")
        server.stop()


if __name__ == "__main__":
    main()
