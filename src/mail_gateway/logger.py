# Copyright 2025 Softwell S.r.l. - SPDX-License-Identifier: Apache-2.0
"""Logging utilities for the mail gateway.

Modules obtain loggers through :func:`get_logger` (or directly with
``logging.getLogger(__name__)``). Handlers and format are installed once by
the entry point through :func:`configure_logging` to avoid duplicate
handlers.

Example:
    Typical usage in a module::

        from mail_gateway.logger import get_logger

        logger = get_logger("mail_gateway.smtp")
        logger.info("Connection established")
"""

import logging

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def get_logger(name: str = "mail_gateway") -> logging.Logger:
    """Retrieve a logger instance.

    Args:
        name: The logger name. Defaults to "mail_gateway".

    Returns:
        A ``logging.Logger`` instance bound to the given name.
    """
    return logging.getLogger(name)


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler used by the server and the CLI.

    Unknown level names fall back to INFO.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        force=True,
    )
