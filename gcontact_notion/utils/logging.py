"""
Logging setup for gcontact_notion.

All modules log through children of the ``gcontact_notion`` logger. The
CLI attaches two handlers to it:

- stderr, at the chosen level, colored on terminals
- a daily file under ``<config-dir>/logs``, always at DEBUG

Environment overrides:
    GCONTACT_NOTION_DEBUG=1          force DEBUG
    GCONTACT_NOTION_LOG_LEVEL=WARN   console level
    GCONTACT_NOTION_LOG_FILE=path    log file path ("none" disables it)
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from gcontact_notion.utils.paths import resolve_config_dir

LOGGER_NAME = "gcontact_notion"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_FILE_PREFIX = "gcontact_notion_"

ENV_LOG_LEVEL = "GCONTACT_NOTION_LOG_LEVEL"
ENV_DEBUG = "GCONTACT_NOTION_DEBUG"
ENV_LOG_FILE = "GCONTACT_NOTION_LOG_FILE"

_DISABLED_LOG_FILE_VALUES = ("", "none", "disabled", "off")


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name on ANSI terminals."""

    LEVEL_COLORS = {
        logging.DEBUG: "\033[36m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and stderr_supports_color()

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color is None:
            return super().format(record)

        # Work on a copy; other handlers share the record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)


def stderr_supports_color() -> bool:
    """True when stderr is a terminal and NO_COLOR/TERM=dumb are not set."""
    isatty = getattr(sys.stderr, "isatty", None)
    if isatty is None or not isatty():
        return False
    if os.environ.get("NO_COLOR"):
        return False
    return os.environ.get("TERM", "") != "dumb"


def get_log_level_from_env() -> int:
    """
    Console log level from the environment.

    GCONTACT_NOTION_DEBUG wins over GCONTACT_NOTION_LOG_LEVEL; unknown
    level names fall back to INFO.
    """
    if os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes"):
        return logging.DEBUG

    name = os.environ.get(ENV_LOG_LEVEL, "INFO").strip().upper()
    if name == "WARN":
        name = "WARNING"
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def default_log_dir() -> Path:
    """Log directory inside the configuration directory."""
    return resolve_config_dir() / "logs"


def daily_log_name() -> str:
    return f"{LOG_FILE_PREFIX}{datetime.now():%Y%m%d}.log"


def get_log_file_path(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Resolve the log file for today's runs.

    Args:
        log_dir: Directory for daily log files (default: <config-dir>/logs)

    Returns:
        Path from GCONTACT_NOTION_LOG_FILE if set, else the daily file in
        log_dir; None when the environment disables file logging
    """
    override = os.environ.get(ENV_LOG_FILE)
    if override is not None:
        if override.strip().lower() in _DISABLED_LOG_FILE_VALUES:
            return None
        return Path(override).expanduser()

    return (log_dir or default_log_dir()) / daily_log_name()


def _console_handler(level: int, verbose: bool, use_colors: bool) -> logging.Handler:
    fmt = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if use_colors:
        handler.setFormatter(ColoredFormatter(fmt, DATE_FORMAT))
    else:
        handler.setFormatter(logging.Formatter(fmt, DATE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the gcontact_notion logger.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        level: Console level; read from the environment when None
        verbose: Use DEBUG and the verbose format on the console
        log_dir: Directory for the daily log file
        log_file: Explicit log file, overriding log_dir
        enable_file_logging: Attach the file handler at all
        use_colors: Color console level names when stderr supports it

    Returns:
        The package logger
    """
    if level is None:
        level = get_log_level_from_env()
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(level)
    logger.propagate = False

    logger.addHandler(_console_handler(level, verbose, use_colors))

    if enable_file_logging:
        path = log_file or get_log_file_path(log_dir)
        if path is not None:
            try:
                logger.addHandler(_file_handler(path))
            except OSError as e:
                logger.warning(f"Could not open log file {path}: {e}")
            else:
                # The console handler still filters at its own level
                logger.setLevel(logging.DEBUG)
                logger.debug(f"Logging to {path}")

    return logger


def cleanup_old_logs(log_dir: Optional[Path] = None, keep_count: int = 10) -> int:
    """
    Delete daily log files beyond the newest keep_count.

    Args:
        log_dir: Directory holding the daily logs (default: <config-dir>/logs)
        keep_count: Files to keep; 0 disables cleanup

    Returns:
        Number of files deleted
    """
    if keep_count <= 0:
        return 0

    directory = log_dir or default_log_dir()
    if not directory.is_dir():
        return 0

    newest_first = sorted(
        directory.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )

    deleted = 0
    for stale in newest_first[keep_count:]:
        try:
            stale.unlink()
            deleted += 1
        except OSError as e:
            logging.getLogger(__name__).debug(f"Could not delete {stale}: {e}")

    return deleted


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the gcontact_notion hierarchy."""
    if name != LOGGER_NAME and not name.startswith(f"{LOGGER_NAME}."):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


__all__ = [
    "setup_logging",
    "get_logger",
    "cleanup_old_logs",
    "ColoredFormatter",
    "stderr_supports_color",
    "get_log_level_from_env",
    "get_log_file_path",
    "default_log_dir",
    "CONSOLE_FORMAT",
    "VERBOSE_FORMAT",
    "DATE_FORMAT",
]
