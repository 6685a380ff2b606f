from __future__ import annotations

import time
from typing import Callable, List, Optional

from .dispatcher import dispatch
from .protocol import Batch, BatchResponse, Command, Response
from .registry import PrimitiveRegistry

# (index, command, response, duration_ms)
ResultHook = Callable[[int, Command, Response, int], None]


def run_batch(batch: Batch, registry: PrimitiveRegistry, *, on_result: Optional[ResultHook] = None) -> BatchResponse:
    """Execute every command in order.

    A failing command does not stop the batch; results[i] always answers
    commands[i] and the overall status is -1 if any result is -1.
    """
    results: List[Response] = []
    for i, cmd in enumerate(batch.commands):
        t0 = time.time()
        resp = dispatch(cmd, registry)
        dt_ms = int((time.time() - t0) * 1000)
        results.append(resp)
        if on_result is not None:
            on_result(i, cmd, resp, dt_ms)
    return BatchResponse.from_results(results)
