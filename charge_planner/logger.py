"""Logging to console."""
import logging

from rich.console import Console
from rich.logging import RichHandler

from charge_planner.config import LOG_LEVEL

console = Console(width=100)

logger = logging.getLogger("charge_planner")
logger.setLevel(logging.DEBUG)

rich_handler = RichHandler(
    console=console,
    rich_tracebacks=True,
    show_level=True,
    show_time=True,
    show_path=False,
)
rich_handler.setLevel(LOG_LEVEL * 10)
logger.addHandler(rich_handler)


def set_logging_level(level):
    """Set the level of the console handler.

    Parameters
    ----------
    level : int or bool
        A `logging` level, or a short level (1-5) that is multiplied by 10.
        True restores the default level, False silences everything below ERROR.
    """
    if isinstance(level, bool):
        level = LOG_LEVEL if level else 4

    if level < 10:
        level = level * 10

    for handler in logger.handlers:
        if isinstance(handler, RichHandler):
            handler.setLevel(level)
