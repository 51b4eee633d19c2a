from __future__ import annotations

import logging

from pse.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """Attach a basic stderr handler to the ``pse`` logger tree."""
    lvl = level if level is not None else settings.log_level
    if isinstance(lvl, str):
        lvl = logging.getLevelName(lvl.upper())
        if not isinstance(lvl, int):
            lvl = logging.WARNING

    root = logging.getLogger("pse")
    root.setLevel(lvl)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
