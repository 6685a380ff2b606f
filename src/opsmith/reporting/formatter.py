from __future__ import annotations

import shlex
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from jinja2 import ChoiceLoader, Environment, FileSystemLoader, FunctionLoader, select_autoescape

from opsmith.common.resources import packaged_text
from opsmith.slave.protocol import STATUS_OK, Batch, BatchResponse

DEFAULT_TEMPLATE = "batch_result.txt.j2"


@dataclass(frozen=True)
class ResultRow:
    index: int
    command: str
    args: List[str]
    ok: bool
    data: str
    error: str


def build_rows(batch: Batch, response: BatchResponse) -> List[ResultRow]:
    """Pair each command with its result.

    A rejection frame carries no results; every command is then listed
    without an outcome.
    """
    rows: List[ResultRow] = []
    for i, cmd in enumerate(batch.commands):
        res = response.results[i] if i < len(response.results) else None
        rows.append(
            ResultRow(
                index=i + 1,
                command=cmd.name,
                args=list(cmd.args),
                ok=res is not None and res.status == STATUS_OK,
                data=res.data if res is not None else "",
                error=res.error if res is not None else "",
            )
        )
    return rows


def _packaged_template(name: str) -> Optional[str]:
    return packaged_text("templates", name)


def _environment(template_dir: Optional[Path]) -> Environment:
    loaders = []
    if template_dir is not None:
        loaders.append(FileSystemLoader(str(template_dir)))
    else:
        # Repo-local templates win over the packaged ones.
        loaders.append(FileSystemLoader(str(Path("templates"))))
        loaders.append(FunctionLoader(_packaged_template))
    env = Environment(
        loader=ChoiceLoader(loaders),
        autoescape=select_autoescape(["html", "xml"]),
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters["shquote"] = shlex.quote
    return env


def render_batch_response(
    batch: Batch,
    response: BatchResponse,
    *,
    template_dir: Optional[Path] = None,
    template_name: str = DEFAULT_TEMPLATE,
) -> str:
    """Render a human-readable report of one batch round trip."""
    rows = build_rows(batch, response)
    tpl = _environment(template_dir).get_template(template_name)
    return tpl.render(
        rows=rows,
        status=response.status,
        overall_ok=response.status == STATUS_OK,
        rejection=response.error,
        total=len(rows),
        failed=sum(1 for r in rows if not r.ok),
    )
