from __future__ import annotations

import logging


_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | int = "INFO") -> None:
    """Configure the root logger once for the whole process."""
    if isinstance(level, str):
        resolved = logging.getLevelName(level.strip().upper())
        if not isinstance(resolved, int):
            resolved = logging.INFO
    else:
        resolved = level
    logging.basicConfig(level=resolved, format=_FORMAT)
    logging.getLogger("pocket").setLevel(resolved)
    # httpx logs every request at INFO, which duplicates our own lines
    logging.getLogger("httpx").setLevel(max(resolved, logging.WARNING))
