# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Logging configuration using Python's standard logging with Rich.

Library modules only create loggers; the CLI decides where records go:

    from testx._internal.logging import setup_logging

    setup_logging(level="info")

    import logging
    logger = logging.getLogger(__name__)
    logger.info("Expanding...")
"""

import logging

LEVELS = {
    'error': logging.ERROR,
    'warning': logging.WARNING,
    'info': logging.INFO,
    'debug': logging.DEBUG
}


def setup_logging(level: str = "warning") -> None:
    """Configure Python logging with Rich handler.

    Maps string level ('error', 'warning', 'info', 'debug') to logging constants.
    """
    from rich.logging import RichHandler

    log_level = LEVELS.get(level.lower(), logging.WARNING)

    root = logging.getLogger()
    root.setLevel(log_level)

    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(
            rich_tracebacks=(log_level == logging.DEBUG),
            show_path=False,
            markup=False,
            show_time=False
        )
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setLevel(log_level)

    # Template engine noise only matters when debugging
    if log_level > logging.DEBUG:
        logging.getLogger('jinja2').setLevel(logging.ERROR)
