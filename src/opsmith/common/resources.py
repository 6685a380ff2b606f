from __future__ import annotations

import importlib.resources as importlib_resources
from typing import Optional


def packaged_text(*parts: str) -> Optional[str]:
    """Read a data file shipped inside the opsmith package, or None if absent."""
    try:
        res = importlib_resources.files("opsmith")
        # One segment per joinpath: namespace-package readers do not split "a/b".
        for part in parts:
            res = res.joinpath(part)
        return res.read_text(encoding="utf-8")
    except (FileNotFoundError, NotADirectoryError, ModuleNotFoundError):
        return None
