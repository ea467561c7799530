"""Client-side core of the cooperative back-office console."""

import logging
import os

logger = logging.getLogger("backoffice")
if not logger.handlers:
    logging.basicConfig(
        level=os.environ.get("BACKOFFICE_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def get_logger(name: str) -> logging.Logger:
    """Return a child of the package logger, e.g. ``backoffice.controller``."""

    return logger.getChild(name.rsplit(".", 1)[-1])


__all__ = ["get_logger", "logger"]
