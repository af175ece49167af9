"""Logging setup for rcmd."""

import logging

DEFAULT_FORMAT = "%(levelname)s [%(name)s] %(message)s"
DEBUG_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(funcName)s:%(lineno)d] %(message)s"

# Verbosity level mapping
VERBOSITY_LEVELS = {
    0: logging.WARNING,  # Default: per-host failures are still shown
    1: logging.INFO,     # -v: connections and dispatch
    2: logging.DEBUG,    # -vv: session lifecycle
}


def get_level_from_verbosity(verbosity: int) -> int:
    """Convert a -v count to a logging level."""
    return VERBOSITY_LEVELS[min(max(verbosity, 0), 2)]


def configure_logging(level: int = logging.WARNING) -> None:
    """Send log records to stderr, replacing any existing root handlers."""
    format_string = DEBUG_FORMAT if level <= logging.DEBUG else DEFAULT_FORMAT

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(format_string))
    root_logger.addHandler(console_handler)

    # asyncssh logs every channel at INFO
    if level > logging.DEBUG:
        logging.getLogger("asyncssh").setLevel(logging.WARNING)
