from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s | [%(levelname)s] %(name)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        handlers=[logging.StreamHandler(sys.stderr)],
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
