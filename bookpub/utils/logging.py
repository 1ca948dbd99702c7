"""Application logging helpers.

Every module logger lives under ``bookpub`` and propagates to it; the single
stream handler and the level from ``settings.LOG_LEVEL`` sit on that parent.
"""
from __future__ import annotations

import logging

from bookpub.config import settings

ROOT_NAME = "bookpub"


def _configure_root() -> logging.Logger:
    root = logging.getLogger(ROOT_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("[bookpub] %(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(handler)
        root.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))
        root.propagate = False
    return root


def get_logger(name: str = ROOT_NAME) -> logging.Logger:
    root = _configure_root()
    if name == ROOT_NAME:
        return root
    return logging.getLogger(name)


__all__ = ["get_logger"]
