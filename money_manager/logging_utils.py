"""Mini README: Logging helpers shared by the ledger service and API.

Structure:
    * configure_root_logger - installs a single console handler on the root logger.
    * get_logger - returns a module logger after ensuring baseline configuration.

Usage:
    Modules call ``get_logger(__name__)`` at import time. The CLI calls
    ``configure_root_logger`` with the configured level before uvicorn starts;
    repeated calls only adjust the level so reloads never stack handlers.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

_LOGGER_INITIALISED = False


def configure_root_logger(level: Union[int, str] = logging.INFO) -> None:
    """Configure the root logger once, later calls only update the level."""

    global _LOGGER_INITIALISED
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if _LOGGER_INITIALISED:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            "[%(asctime)s] [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.addHandler(handler)
    _LOGGER_INITIALISED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Return a module-specific logger."""

    if not _LOGGER_INITIALISED:
        configure_root_logger()
    return logging.getLogger(name)
