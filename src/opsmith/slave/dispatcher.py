from __future__ import annotations

import logging

from .primitives import PrimitiveError
from .protocol import Command, Response, err, ok
from .registry import PrimitiveRegistry

logger = logging.getLogger(__name__)


def dispatch(command: Command, registry: PrimitiveRegistry) -> Response:
    """Run one command and describe the outcome as a Response. Never raises."""
    if command.name == "":
        return err("command name cannot be empty")

    impl = registry.lookup(command.name)
    if impl is None:
        return err(f"primitive {command.name} is not implemented")

    try:
        data = impl(command.args)
    except PrimitiveError as e:
        return err(f"error running primitive {command.name}: {e}")
    except Exception as e:
        logger.exception("Primitive %s raised unexpectedly", command.name)
        return err(f"error running primitive {command.name}: {str(e) or type(e).__name__}")

    return ok(data)
