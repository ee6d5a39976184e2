import logging
import os
import sys
from typing import Dict, Optional

from app.config import settings

# Third-party loggers that drown out application output at INFO
QUIET_LOGGERS: Dict[str, int] = {
    "sqlalchemy.engine": logging.WARNING,
    "multipart": logging.WARNING,
    "httpx": logging.WARNING,
}

DEFAULT_FORMAT = (
    "%(asctime)s │ %(name)-32s │ %(levelname)-8s │ "
    "[%(filename)s:%(lineno)d] │ %(message)s"
)


def _colors_enabled(requested: bool) -> bool:
    if not requested or os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return os.environ.get("TERM") != "dumb" and sys.stdout.isatty()


class ColoredFormatter(logging.Formatter):
    """Colors the level name and message by severity; plain text when piped."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[1;91m",
        logging.CRITICAL: "\033[1;95m",
    }
    NAME_COLOR = "\033[94m"
    RESET = "\033[0m"

    def __init__(self, format_string: str, use_colors: bool = True):
        super().__init__(format_string)
        self._plain = logging.Formatter(format_string)
        self._by_level: Dict[int, logging.Formatter] = {}
        if _colors_enabled(use_colors):
            for level, color in self.LEVEL_COLORS.items():
                colored = (
                    format_string
                    .replace("%(levelname)", f"{color}%(levelname)")
                    .replace("%(name)", f"{self.NAME_COLOR}%(name)")
                    .replace("%(message)s", f"{color}%(message)s{self.RESET}")
                    .replace("s │", f"s{self.RESET} │")
                )
                self._by_level[level] = logging.Formatter(colored)

    def format(self, record: logging.LogRecord) -> str:
        return self._by_level.get(record.levelno, self._plain).format(record)


def setup_logging(
    log_level: Optional[str] = None,
    format_string: Optional[str] = None,
    force_configure: bool = False,
    use_colors: bool = True
) -> None:
    """
    Send every log record to stdout through one colored handler on the root
    logger. Level comes from ``settings.LOG_LEVEL`` unless given.
    """
    root_logger = logging.getLogger()
    if root_logger.handlers and not force_configure:
        return

    level_name = (log_level or settings.LOG_LEVEL).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(format_string or DEFAULT_FORMAT, use_colors=use_colors))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(max(level, quiet_level))

    root_logger.debug(f"Logging configured at {level_name}")


def get_logger(name: str) -> logging.Logger:
    """Module logger that always reaches the root handler."""
    logger = logging.getLogger(name)
    logger.handlers = []
    logger.propagate = True
    return logger
