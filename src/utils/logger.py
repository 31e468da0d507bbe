import logging
import os

from rich.logging import RichHandler

LOG_FILE_ENV = "PORTAL_LOG_FILE"


class CenteredFormatter(logging.Formatter):
    longest_name_length = 10  # grows with the longest module name seen

    def __init__(self, fmt=None, datefmt=None, style="%", initial_width=10):
        super().__init__(fmt, datefmt, style)
        CenteredFormatter.longest_name_length = initial_width

    def format(self, record):
        short_name = record.name.removeprefix("portal.")
        CenteredFormatter.longest_name_length = max(
            CenteredFormatter.longest_name_length, len(short_name)
        )
        record.short_name = short_name.center(CenteredFormatter.longest_name_length)
        return super().format(record)


def _make_handler(log_level: int) -> logging.Handler:
    """
    Rich console output by default. While the TUI owns the terminal, set
    PORTAL_LOG_FILE to send records to a file instead.
    """
    log_file = os.getenv(LOG_FILE_ENV)
    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(
            CenteredFormatter("%(asctime)s %(levelname)-8s [%(short_name)s]  %(message)s")
        )
    else:
        handler = RichHandler(
            show_time=True,
            show_level=True,
            show_path=False,
            rich_tracebacks=True,
            log_time_format="[%X]",
        )
        handler.setFormatter(CenteredFormatter("[%(short_name)s]  %(message)s"))
    handler.setLevel(log_level)
    return handler


def get_logger(name=None) -> logging.Logger:
    """
    Return the portal logger for a module, e.g. ``get_logger(__name__)``.
    """
    name = f"portal.{name or 'app'}"
    logger = logging.getLogger(name)
    log_level = logging.DEBUG if os.getenv("DEBUG") else logging.INFO
    logger.setLevel(log_level)

    if not logger.handlers:
        logger.addHandler(_make_handler(log_level))
        logger.propagate = False
        logger.debug(f"Logger for '{name}' initialized.")

    return logger
