"""Logging setup for the studysphere package.

A single stream handler is attached to the ``studysphere`` logger; modules
log through ``logging.getLogger(__name__)`` and inherit it.
"""
from __future__ import annotations

import logging
import threading

_LOCK = threading.Lock()
_ROOT_NAME = "studysphere"


def configure_logging(level_name: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(_ROOT_NAME)
    level = getattr(logging, str(level_name).upper(), logging.INFO)
    with _LOCK:
        logger.setLevel(level)
        if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[studysphere] %(asctime)s %(levelname)s %(name)s %(message)s"))
            logger.addHandler(handler)
        logger.propagate = False
    return logger


__all__ = ["configure_logging"]
