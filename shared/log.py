"""
Logging bootstrap shared by the API server and the CLIs.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAMESPACES = ("stemcast", "shared", "player", "strafe_tool")


def setup_logging(level: str = "INFO", console: Console = None) -> logging.Logger:
    """Attach a rich console handler to the project loggers and return the root one."""
    numeric_level = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = RichHandler(console=console or Console(stderr=True), rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    for name in LOGGER_NAMESPACES:
        logger = logging.getLogger(name)
        for existing in list(logger.handlers):
            existing.close()
        logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(numeric_level)
        logger.propagate = False

    return logging.getLogger("stemcast")
