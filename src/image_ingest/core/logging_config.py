"""Process-wide logger for the ingestion engine, its backends and the CLI.

Everything logs under the ``image-ingest`` logger to stdout, so one
``LOG_LEVEL`` switch covers a whole upload from stream to stored keys.
"""

import os
import sys
import logging
from typing import Optional


DEFAULT_LOGGER_NAME = "image-ingest"


def setup_logger(
    name: str = DEFAULT_LOGGER_NAME,
    level: Optional[str] = None,
    format_type: str = "structured",
) -> logging.Logger:
    """
    Attach the stdout handler used for upload and removal logs.

    An explicit ``level`` wins over ``LOG_LEVEL``; ``LOG_FORMAT`` wins over
    ``format_type``. The structured format carries file and function so a
    failed ingestion can be traced to the stage that raised it. Calling it
    again for a configured logger only updates the level.

    Args:
        name: Logger to configure, normally the package logger
        level: Level name such as "DEBUG"; unknown names fall back to INFO
        format_type: "structured" or "simple"

    Returns:
        The configured logger
    """
    logger = logging.getLogger(name)

    if level:
        log_level = getattr(logging, level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL", "INFO").upper()
        log_level = getattr(logging, env_level, logging.INFO)

    logger.setLevel(log_level)

    # Avoid duplicate handlers
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)

        env_format = os.getenv("LOG_FORMAT", format_type).lower()

        if env_format == "structured":
            formatter = logging.Formatter(
                "%(asctime)s | %(name)s | %(levelname)-8s | "
                "%(filename)s:%(lineno)d | %(funcName)s() | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        else:
            formatter = logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            )

        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False
    return logger


def get_logger(name: str = DEFAULT_LOGGER_NAME) -> logging.Logger:
    """
    Return the logger for one part of the ingestion stack.

    Short names ("engine", "backend.local") become children of the
    "image-ingest" logger and share its level and handler.

    Args:
        name: Component name such as "engine" or "backend.s3"

    Returns:
        The package logger or one of its children
    """
    package_logger = logging.getLogger(DEFAULT_LOGGER_NAME)
    if not package_logger.handlers:
        package_logger = setup_logger()
    if name == DEFAULT_LOGGER_NAME:
        return package_logger
    if not name.startswith(f"{DEFAULT_LOGGER_NAME}."):
        name = f"{DEFAULT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


logger = setup_logger()
