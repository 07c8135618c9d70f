import json
import logging
import os
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

LOG_LEVEL_VARIABLE = "APPSETTINGS_LOG_LEVEL"
LOG_FORMAT_VARIABLE = "APPSETTINGS_LOG_FORMAT"


class LogFormat(Enum):
    PRETTY = "pretty"
    JSON = "json"


# Level colors; everything else is rendered dim or plain
RESET = "\033[0m"
DIM = "\033[90m"
LEVEL_COLORS = {
    "DEBUG": "\033[37m",
    "INFO": "\033[36m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[41m\033[97m",
}

_STANDARD_RECORD_KEYS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def _short_name(name: str) -> str:
    return name.split(".", 1)[1] if name.startswith("appsettings.") else name


class PrettyColoredFormatter(logging.Formatter):
    """
    Human-readable colored formatter. Records carrying an ``error`` extra
    (as logged by the composer) end with the error code:

    2025-08-13 14:35:12.345 UTC | ERROR    | composer:182 | Failed to compose settings AppConfig: ... [VALIDATE_ERROR]
    """

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        parts = [
            f"{DIM}{created:%Y-%m-%d %H:%M:%S}.{int(record.msecs):03d} UTC{RESET}",
            f"{LEVEL_COLORS.get(record.levelname, '')}{record.levelname:<8}{RESET}",
            f"{DIM}{_short_name(record.name)}:{record.lineno}{RESET}",
        ]

        message = record.getMessage()
        error = getattr(record, "error", None)
        if isinstance(error, dict) and error.get("error_code"):
            message += f" [{error['error_code']}]"
        if record.exc_info:
            message += "\n" + self.formatException(record.exc_info)

        return " | ".join(parts) + f" | {message}{RESET}"


class JsonFormatter(logging.Formatter):
    """One JSON object per record; extra attributes are added as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update((k, v) for k, v in vars(record).items() if k not in _STANDARD_RECORD_KEYS)
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), default=str)


def setup_logging(
    name: str = "appsettings",
    level: Optional[str] = None,
    log_format: Optional[str] = None
) -> logging.Logger:
    """
    Send the library's log records to stdout.

    Level and format fall back to APPSETTINGS_LOG_LEVEL (INFO) and
    APPSETTINGS_LOG_FORMAT (pretty).

    Raises:
        ValueError: If the format is neither "pretty" nor "json"
    """
    level = level or os.environ.get(LOG_LEVEL_VARIABLE, "INFO")
    log_format = (log_format or os.environ.get(LOG_FORMAT_VARIABLE, LogFormat.PRETTY.value)).lower()

    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)

    if log_format == LogFormat.PRETTY.value:
        handler.setFormatter(PrettyColoredFormatter())
    elif log_format == LogFormat.JSON.value:
        handler.setFormatter(JsonFormatter())
    else:
        raise ValueError(f"Unknown log format: {log_format}")

    logger.handlers = [handler]
    logger.propagate = False
    return logger
