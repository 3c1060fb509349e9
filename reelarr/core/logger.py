# reelarr/core/logger.py

import os
import sys
import logging

LOG_LEVEL_ENV = "REELARR_LOG_LEVEL"


# ─── Formatter ───────────────────────────────────────────────────────────────
class CategoryFormatter(logging.Formatter):
    """Adds ``category``: the last dotted part of the logger name, upper-cased."""

    def format(self, record):
        if not hasattr(record, "category"):
            record.category = record.name.rsplit(".", 1)[-1].upper()
        return super().format(record)


formatter = CategoryFormatter(
    fmt="%(asctime)s %(levelname)-8s [%(category)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S"
)


def level_from_env(default: int = logging.INFO) -> int:
    name = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    level = logging.getLevelName(name) if name else default
    return level if isinstance(level, int) else default


# ─── Public API ──────────────────────────────────────────────────────────────
def setup_logger(name: str, level: int | None = None) -> logging.Logger:
    if level is None:
        level = level_from_env()

    logger = logging.getLogger(name)
    logger.setLevel(level)

    if logger.handlers:
        return logger

    # one stdout handler per module logger; nothing reaches the root logger
    logger.propagate = False
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    logger.addHandler(handler)

    return logger
