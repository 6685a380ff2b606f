from __future__ import annotations

import argparse


def main() -> None:
    p = argparse.ArgumentParser(prog="opsmith", description="Remote primitive execution over TCP (master/slave)")
    sub = p.add_subparsers(dest="cmd", required=True)

    # slave
    p_slave = sub.add_parser("slave", help="Run the slave server")
    p_slave.add_argument("--host", default="")
    p_slave.add_argument("--port", type=int, default=0)
    p_slave.add_argument("--config", default="", help="Primitive policy YAML")
    p_slave.add_argument("--audit-log", default="", help="JSONL audit log path")
    p_slave.set_defaults(_entry="opsmith.cli.run_slave")

    # batch
    p_batch = sub.add_parser("batch", help="Send a batch of commands to a slave")
    src = p_batch.add_mutually_exclusive_group(required=True)
    src.add_argument("--file", default="")
    src.add_argument("--cmd", action="append", default=[])
    p_batch.add_argument("--host", default="")
    p_batch.add_argument("--port", type=int, default=0)
    p_batch.add_argument("--json", action="store_true")
    p_batch.add_argument("--template-dir", default="")
    p_batch.set_defaults(_entry="opsmith.cli.run_batch")

    args = p.parse_args()

    if args._entry == "opsmith.cli.run_slave":
        from opsmith.cli.run_slave import main as _m

        argv = []
        if args.host:
            argv += ["--host", args.host]
        if args.port:
            argv += ["--port", str(args.port)]
        if args.config:
            argv += ["--config", args.config]
        if args.audit_log:
            argv += ["--audit-log", args.audit_log]
        _m(argv)
        return

    if args._entry == "opsmith.cli.run_batch":
        from opsmith.cli.run_batch import main as _m

        argv = ["--file", args.file] if args.file else []
        for line in args.cmd:
            argv += ["--cmd", line]
        if args.host:
            argv += ["--host", args.host]
        if args.port:
            argv += ["--port", str(args.port)]
        if args.json:
            argv.append("--json")
        if args.template_dir:
            argv += ["--template-dir", args.template_dir]
        _m(argv)
        return

    raise SystemExit(2)
