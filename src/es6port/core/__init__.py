"""Core utilities shared across :mod:`es6port` modules.

The core namespace provides cohesive seams for configuration loading and
logging setup so the conversion stages remain lightweight.

Example:
    >>> from es6port.core import get_logger
    >>> logger = get_logger(__name__)
    >>> isinstance(logger, object)
    True
"""

from __future__ import annotations

from .config import AppConfig, load_config
from .logging import configure_logging, get_logger

__all__ = [
    "AppConfig",
    "configure_logging",
    "get_logger",
    "load_config",
]
