"""Logging for the index service, runner and API server.

Console output is colored and prefixed by severity, the log file under
``<log dir>/app.log`` is plain text and rotated. Timestamps use TIMEZONE.
"""

from datetime import datetime
from pytz import timezone
import logging.config
import logging
import os
from logging import Logger

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 3

loglevel = logging.getLevelName(os.getenv("LOG_LEVEL", "info").upper())
if not isinstance(loglevel, int):
    loglevel = logging.INFO
debug_mode = loglevel <= logging.DEBUG

_ANSI_RESET = "\033[0m"
_ANSI_COLORS: dict[str, str] = {
    "red": "\033[31m",
    "green": "\033[32m",
    "yellow": "\033[33m",
    "blue": "\033[34m",
    "magenta": "\033[35m",
    "cyan": "\033[36m",
    "white": "\033[37m",
}
_LEVEL_PREFIXES: dict[int, str] = {
    logging.CRITICAL: "⛔ ",
    logging.ERROR: "⛔ ",
    logging.WARNING: "⚠️ ",
}


class WatcherNoiseFilter(logging.Filter):
    """Drop the per-event debug chatter of watchdog's observer threads outside debug mode."""

    def filter(self, record):
        if record.name.startswith("watchdog") and record.levelno < logging.WARNING:
            return debug_mode
        return True


class VaultLogFormatter(logging.Formatter):
    """Timezone aware formatter that prefixes warnings and errors.

    With ``use_color`` the line is wrapped in the ANSI color named by the
    record's ``color`` attribute (see :class:`ColorLogger`).
    """

    def __init__(self, tz_name: str, use_color: bool = False, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.tz = timezone(tz_name)
        self.use_color = use_color

    def formatTime(self, record, datefmt=None):
        moment = datetime.fromtimestamp(record.created, self.tz)
        return moment.strftime(datefmt) if datefmt else moment.isoformat()

    def format(self, record) -> str:
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            # a third party logger passed mismatched %-args
            return ""
        record.msg = _LEVEL_PREFIXES.get(record.levelno, "") + message
        record.args = ()
        line = super().format(record)
        color = _ANSI_COLORS.get(getattr(record, "color", None) or "") if self.use_color else None
        return f"{color}{line}{_ANSI_RESET}" if color else line


class ColorLogger:
    """Wraps a :class:`logging.Logger` and accepts ``color=<name>`` on every log call.

    Example::

        logger.info("Index ready (%d records).", count, color="green")

    Only the console handler renders the color.
    """

    def __init__(self, logger: Logger):
        self._logger = logger

    def _emit(self, level: int, msg, args, color: str | None, kwargs: dict) -> None:
        if color is not None:
            kwargs["extra"] = {**(kwargs.get("extra") or {}), "color": color}
        kwargs.setdefault("stacklevel", 3)
        self._logger.log(level, msg, *args, **kwargs)

    def debug(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.DEBUG, msg, args, color, kwargs)

    def info(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.INFO, msg, args, color, kwargs)

    def warning(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.WARNING, msg, args, color, kwargs)

    def error(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def critical(self, msg, *args, color: str | None = None, **kwargs):
        self._emit(logging.CRITICAL, msg, args, color, kwargs)

    def exception(self, msg, *args, color: str | None = None, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, msg, args, color, kwargs)

    def log(self, level: int, msg, *args, color: str | None = None, **kwargs):
        self._emit(level, msg, args, color, kwargs)

    def __getattr__(self, name):
        # setLevel, handlers, isEnabledFor ... come from the wrapped logger
        return getattr(self._logger, name)


def _get_log_dir() -> str:
    """LOG_DIR if set, else ``<ROOT_DIR or cwd>/logs``."""
    if os.getenv("LOG_DIR"):
        return os.environ["LOG_DIR"]
    return os.path.join(os.getenv("ROOT_DIR", os.getcwd()), "logs")


def setup_logging() -> ColorLogger:
    log_dir = _get_log_dir()
    os.makedirs(log_dir, exist_ok=True)
    tz_name = os.getenv("TIMEZONE", "Europe/Berlin")

    def _formatter(use_color: bool) -> dict:
        return {
            "()": VaultLogFormatter,
            "format": LOG_FORMAT,
            "datefmt": DATE_FORMAT,
            "tz_name": tz_name,
            "use_color": use_color,
        }

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": _formatter(False),
            "colored": _formatter(True),
        },
        "filters": {
            "watcher_noise": {"()": WatcherNoiseFilter},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "colored",
                "filters": ["watcher_noise"],
                "level": loglevel,
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "filename": os.path.join(log_dir, "app.log"),
                "maxBytes": LOG_FILE_MAX_BYTES,
                "backupCount": LOG_FILE_BACKUPS,
                "encoding": "utf-8",
                "formatter": "plain",
                "filters": ["watcher_noise"],
                "level": loglevel,
            },
        },
        "root": {"handlers": ["console", "file"], "level": loglevel},
    })

    # request lines of the embedding clients only in debug mode
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug_mode else logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.DEBUG if debug_mode else logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.DEBUG if debug_mode else logging.INFO)

    return ColorLogger(logging.getLogger("vault_index"))
