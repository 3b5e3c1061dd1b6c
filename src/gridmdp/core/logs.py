from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .io import ensure_dir

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Attach console (and optional file) handlers to the package root logger.

    Library modules only ever call logging.getLogger("gridmdp.<area>"); handlers are
    installed here, once, by entry points.
    """
    log = logging.getLogger("gridmdp")
    lvl = getattr(logging, level.upper(), logging.INFO)
    log.setLevel(lvl)
    # Avoid adding multiple handlers on repeated runs
    if not log.handlers:
        fmt = logging.Formatter(LOG_FORMAT)
        ch = logging.StreamHandler()
        ch.setLevel(lvl)
        ch.setFormatter(fmt)
        log.addHandler(ch)
        if log_file:
            ensure_dir(Path(log_file).parent)
            fh = logging.FileHandler(log_file)
            fh.setLevel(lvl)
            fh.setFormatter(fmt)
            log.addHandler(fh)
    return log
