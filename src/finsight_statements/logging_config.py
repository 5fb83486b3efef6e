# FinSight Statements - Financial statement normalization & reporting engine
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""Logging setup for the FinSight Statements command-line tool."""

import logging
import sys
from typing import Any, Optional, Union

_LOGGER_PREFIX = "finsight_statements"
_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(
    level: Union[int, str] = logging.WARNING,
    stream: Any = None,
) -> None:
    """Attach a stderr handler to the package logger hierarchy.

    Calling it again only updates the level.

    Raises:
        ValueError: if ``level`` is not a known level name.
    """
    global _handler
    if isinstance(level, str):
        resolved = logging.getLevelName(level.upper())
        if not isinstance(resolved, int):
            raise ValueError(f"Unknown log level: {level!r}")
        level = resolved

    package_logger = logging.getLogger(_LOGGER_PREFIX)
    package_logger.setLevel(level)

    if _handler is None:
        _handler = logging.StreamHandler(stream or sys.stderr)
        _handler.setFormatter(logging.Formatter(_FORMAT))
        package_logger.addHandler(_handler)


def reset_logging() -> None:
    """Remove the handler installed by configure_logging()."""
    global _handler
    package_logger = logging.getLogger(_LOGGER_PREFIX)
    if _handler is not None:
        package_logger.removeHandler(_handler)
        _handler = None
    package_logger.setLevel(logging.NOTSET)
