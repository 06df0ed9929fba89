"""
Form Engine Logging

The "formcraft" logger carries condition failures, clear-on-hide cascades,
ignored writes to disposed sessions and, at debug level, a recomputation
trace per refresh. The package installs no output of its own; applications
call configure_logging() or attach handlers to the logger.
"""

import logging
from typing import Optional

logger = logging.getLogger("formcraft")
logger.addHandler(logging.NullHandler())

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATE_FORMAT = "%H:%M:%S"

_console_handler: Optional[logging.Handler] = None


def configure_logging(
    level: int = logging.WARNING,
    format_str: Optional[str] = None,
    date_format: Optional[str] = None,
) -> logging.Handler:
    """
    Send engine log records to stderr.

    Replaces a handler installed by an earlier call, so calling this again
    only changes the level and format.

    Returns:
        The installed handler
    """
    global _console_handler
    if _console_handler is not None:
        logger.removeHandler(_console_handler)

    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            format_str or DEFAULT_FORMAT,
            datefmt=date_format or DEFAULT_DATE_FORMAT,
        )
    )
    logger.addHandler(handler)
    logger.setLevel(level)
    _console_handler = handler
    return handler


def set_debug_enabled(enabled: bool):
    """
    Enable or disable debug logging.

    Args:
        enabled: True to trace condition evaluation, invalidation and
            recomputation, False for warning-only
    """
    logger.setLevel(logging.DEBUG if enabled else logging.WARNING)


def is_debug_enabled() -> bool:
    return logger.isEnabledFor(logging.DEBUG)


def trace_refresh(form_id: Optional[str], runs_before: int, runs_after: int, visited: int):
    """Debug-log how many computations a refresh re-ran out of the nodes it visited."""
    if not is_debug_enabled():
        return
    logger.debug(
        f"Refreshed '{form_id or '<fields>'}': "
        f"{runs_after - runs_before} computation(s) re-ran over {visited} node(s)"
    )
