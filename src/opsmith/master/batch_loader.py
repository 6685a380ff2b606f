from __future__ import annotations

import shlex
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml
from pydantic import ValidationError

from opsmith.slave.protocol import Batch, Command


def load_batch(path: Path) -> Batch:
    """Load + validate a batch file.

    The file is YAML (JSON is accepted too, being a subset) with a top-level
    ``commands`` list of ``{name, args}`` mappings, in execution order.
    """
    try:
        raw: Dict[str, Any] = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid batch file: {path}\n{e}") from e
    try:
        return Batch.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid batch file: {path}\n{e}") from e


def parse_command_line(line: str) -> Command:
    """Parse ``Name arg1 'arg two'`` into a Command.

    Arguments follow shell quoting rules, so ``''`` yields an empty argument.
    """
    try:
        parts = shlex.split(line)
    except ValueError as e:
        raise ValueError(f"Cannot parse command line {line!r}: {e}") from e
    if not parts:
        raise ValueError("Empty command line")
    return Command(name=parts[0], args=parts[1:])


def build_batch(lines: Iterable[str]) -> Batch:
    commands: List[Command] = [parse_command_line(line) for line in lines]
    return Batch(commands=commands)
