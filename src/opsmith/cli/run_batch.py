from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from opsmith.cli.logging_setup import configure_logging
from opsmith.config import load_settings
from opsmith.master.batch_loader import build_batch, load_batch
from opsmith.master.client import SlaveClient
from opsmith.reporting.formatter import render_batch_response
from opsmith.slave.protocol import STATUS_OK

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BATCH_FAILED = 1
EXIT_TRANSPORT = 2


def main(argv: list[str] | None = None) -> None:
    p = argparse.ArgumentParser(description="Send one batch of commands to an opsmith slave.")
    src = p.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", default="", help="Batch YAML/JSON file with a 'commands' list")
    src.add_argument("--cmd", action="append", default=[], help="Command line, e.g. \"ReadFile /tmp/a.txt\" (repeatable)")
    p.add_argument("--host", default="", help="Slave host (default: OPSMITH_HOST)")
    p.add_argument("--port", type=int, default=0, help="Slave port (default: OPSMITH_PORT)")
    p.add_argument("--json", action="store_true", help="Print the raw BatchResponse JSON")
    p.add_argument("--template-dir", default="", help="Directory holding a custom batch_result.txt.j2")
    args = p.parse_args(argv)

    s = load_settings()
    configure_logging(s.log_level)

    try:
        batch = load_batch(Path(args.file)) if args.file else build_batch(args.cmd)
    except (OSError, ValueError) as e:
        print(f"[batch] {e}", file=sys.stderr)
        raise SystemExit(EXIT_TRANSPORT)

    client = SlaveClient(args.host or s.host, args.port or s.port, s.client_timeout_s)
    result = client.execute(batch)

    if result.response is None:
        print(f"[batch] {result.error_code}: {result.message}", file=sys.stderr)
        raise SystemExit(EXIT_TRANSPORT)

    if args.json:
        print(result.response.model_dump_json(exclude_none=True))
    else:
        template_dir = Path(args.template_dir) if args.template_dir else None
        sys.stdout.write(render_batch_response(batch, result.response, template_dir=template_dir))

    if not result.ok:
        raise SystemExit(EXIT_TRANSPORT)
    raise SystemExit(EXIT_OK if result.response.status == STATUS_OK else EXIT_BATCH_FAILED)


if __name__ == "__main__":
    main()
