from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional

from .primitives import DEFAULT_SHELL, Primitive, builtin_primitives

logger = logging.getLogger(__name__)


class RegistryFrozenError(RuntimeError):
    pass


class PrimitiveRegistry:
    """Name -> Primitive table shared by every connection.

    Writers copy the table under a lock and swap in a new read-only snapshot,
    so lookups never block and never observe a half-applied update. Once
    frozen, the registry rejects further registration. There is no removal.
    """

    def __init__(self, primitives: Iterable[Primitive] = ()) -> None:
        self._lock = threading.Lock()
        self._table: Mapping[str, Primitive] = MappingProxyType({})
        self._frozen = False
        for p in primitives:
            self.register(p.name, p)

    def register(self, name: str, impl: Primitive) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("primitive name must be a non-empty string")
        if not isinstance(impl, Primitive):
            raise TypeError(f"primitive {name} must be a Primitive instance, got {type(impl).__name__}")
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(f"registry is frozen; cannot register {name}")
            table = dict(self._table)
            if name in table:
                logger.info("Overwriting primitive %s", name)
            table[name] = impl
            self._table = MappingProxyType(table)

    def lookup(self, name: str) -> Optional[Primitive]:
        return self._table.get(name)

    def freeze(self) -> "PrimitiveRegistry":
        with self._lock:
            self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def names(self) -> List[str]:
        return sorted(self._table)

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def __len__(self) -> int:
        return len(self._table)


def default_registry(*, disabled: Iterable[str] = (), shell: str = DEFAULT_SHELL) -> PrimitiveRegistry:
    """Build and freeze the standard registry, leaving out ``disabled`` names."""
    skip = set(disabled)
    known = builtin_primitives(shell=shell)
    unknown = skip - {p.name for p in known}
    if unknown:
        logger.warning("Ignoring unknown disabled primitives: %s", ", ".join(sorted(unknown)))
    registry = PrimitiveRegistry(p for p in known if p.name not in skip)
    if skip:
        logger.info("Primitives disabled by policy: %s", ", ".join(sorted(skip - unknown)))
    return registry.freeze()
