"""
Logging Setup Utilities.
"""

import logging
from typing import Union

from rich.logging import RichHandler


class _QuietPollFilter(logging.Filter):
    """Drop uvicorn access-log records for /health and /metrics."""

    _NOISY = ("/health", "/metrics")

    def filter(self, record: logging.LogRecord) -> bool:
        msg = record.getMessage()
        return not any(path in msg for path in self._NOISY)


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level, either a number or a name such as "DEBUG"
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = RichHandler(
        show_time=True,
        show_path=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root_logger.addHandler(console_handler)

    access = logging.getLogger("uvicorn.access")
    if not any(isinstance(f, _QuietPollFilter) for f in access.filters):
        access.addFilter(_QuietPollFilter())
