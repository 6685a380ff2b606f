from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from opsmith.common.resources import packaged_text


class PrimitivePolicy(BaseModel):
    disabled: List[str] = Field(default_factory=list)

    @field_validator("disabled")
    @classmethod
    def _names_non_empty(cls, v: List[str]) -> List[str]:
        for name in v:
            if not name.strip():
                raise ValueError("disabled primitive names must be non-empty")
        return [name.strip() for name in v]


class SlavePolicy(BaseModel):
    """Restrictions applied above the primitives when the registry is built."""

    primitives: PrimitivePolicy = Field(default_factory=PrimitivePolicy)

    @property
    def disabled(self) -> List[str]:
        return list(self.primitives.disabled)


def _read_yaml(path: Path) -> Dict[str, Any]:
    return yaml.safe_load(path.read_text(encoding="utf-8")) or {}


def _load_raw(path: Optional[Path]) -> Dict[str, Any]:
    """Find the policy YAML.

    Order:
    1) Explicit path arg (must exist)
    2) OPSMITH_SLAVE_CONFIG env var (must exist if set)
    3) CWD-relative slave.yaml
    4) Packaged default (opsmith/resources/slave_config.yaml)
    """
    if path is not None:
        if not path.exists():
            raise ValueError(f"Slave config not found: {path}")
        return _read_yaml(path)

    env_path = os.getenv("OPSMITH_SLAVE_CONFIG", "").strip()
    if env_path:
        p = Path(env_path)
        if not p.exists():
            raise ValueError(f"OPSMITH_SLAVE_CONFIG points to a missing file: {p}")
        return _read_yaml(p)

    dev = Path("slave.yaml")
    if dev.exists():
        return _read_yaml(dev)

    txt = packaged_text("resources", "slave_config.yaml")
    if txt is None:
        return {}
    return yaml.safe_load(txt) or {}


def load_policy(path: Optional[Path] = None) -> SlavePolicy:
    raw = _load_raw(path)
    try:
        return SlavePolicy.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid slave config YAML: {path or 'default'}\n{e}") from e
