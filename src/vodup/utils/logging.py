# coding=utf-8
# Copyright 2024 XiaHan
#
# Use of this source code is governed by an MIT-style
# license that can be found in the LICENSE file or at
# https://opensource.org/licenses/MIT.

import logging
import logging.handlers
import os
import sys
from typing import Optional, Union

from vodup.constants import DEFAULT_LOGGER_DIR

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_MARKER = "_vodup_handler"


def build_logger(
    logger_name: str,
    logger_filename: Optional[str] = None,
    logger_dir: Optional[str] = None,
    level: Union[int, str] = logging.INFO,
) -> logging.Logger:
    """
    Configure and return a logger writing to stderr and, optionally, to a
    daily rotated file.

    Handlers installed by a previous call are replaced, so calling this
    again only changes the level or the file target.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    logger = logging.getLogger(logger_name)
    if isinstance(level, str):
        level = level.upper()
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, _MARKER, False):
            logger.removeHandler(handler)
            handler.close()

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    setattr(stream_handler, _MARKER, True)
    logger.addHandler(stream_handler)

    if logger_filename:
        logger_dir = logger_dir or DEFAULT_LOGGER_DIR
        os.makedirs(logger_dir, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            os.path.join(logger_dir, logger_filename),
            when="D",
            utc=True,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        setattr(file_handler, _MARKER, True)
        logger.addHandler(file_handler)

    return logger


def mask(value: Optional[str], keep: int = 6) -> str:
    """Shorten a secret for log output."""
    if not value:
        return "<empty>"
    if len(value) <= keep:
        return "*" * len(value)
    return f"{value[:keep]}...({len(value)} chars)"
