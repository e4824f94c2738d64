"""Logging for pgmoneta-mcp.

All records go through the ``pgmoneta_mcp`` logger. ``setup_logging``
attaches three handlers to it:

- a rotating log file receiving everything at the configured level
- a rotating error file receiving ERROR and above
- a console handler on stderr, since stdout is the MCP stdio transport

Rotated files are gzip-compressed. Failures worth diagnosing are written
as JSON entries carrying an ``ErrorCode`` and a short hint, so they can
be read back with ``parse_structured_log`` and ``get_recent_errors``.
"""

import gzip
import json
import logging
import os
import shutil
import sys
from collections import deque
from dataclasses import dataclass, asdict
from datetime import datetime
from enum import Enum
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, List, Optional

from pgmoneta_mcp.config import (
    ConfigNotFoundError,
    ConfigurationError,
    LoggingConfig,
    ValidationError,
)
from pgmoneta_mcp.errors import InvalidParameters, ToolNotFound


LOGGER_NAME = "pgmoneta_mcp"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class ErrorCode(Enum):
    """
    Codes attached to structured log entries.

    These appear in log files only. Callers of the MCP tools see a
    message and a JSON-RPC code, never these values.
    """
    # Dispatch (1xxx)
    TOOL_NOT_FOUND = "E1001"
    INVALID_PARAMETERS = "E1002"

    # pgmoneta backend (2xxx)
    BACKEND_CONNECTION_FAILED = "E2001"
    BACKEND_TIMEOUT = "E2002"
    BACKEND_INVALID_RESPONSE = "E2003"
    BACKEND_REQUEST_FAILED = "E2004"

    # Configuration (4xxx)
    CONFIG_NOT_FOUND = "E4001"
    CONFIG_INVALID = "E4002"

    # Other (0xxx)
    UNKNOWN_ERROR = "E0001"
    INTERNAL_ERROR = "E0002"


ERROR_GUIDANCE: Dict[ErrorCode, str] = {
    ErrorCode.TOOL_NOT_FOUND: "The client asked for a tool or prompt this server does not provide. Refresh the client's tool list.",
    ErrorCode.INVALID_PARAMETERS: "The tool arguments did not match the declared schema. Check required fields and the sort value.",

    ErrorCode.BACKEND_CONNECTION_FAILED: "Could not connect to pgmoneta. Check that it is running and that host and port in the [pgmoneta] section are correct.",
    ErrorCode.BACKEND_TIMEOUT: "pgmoneta did not answer in time. Increase pgmoneta.timeout_seconds or check the daemon's load.",
    ErrorCode.BACKEND_INVALID_RESPONSE: "pgmoneta sent a response that could not be read. Check that client and daemon versions match.",
    ErrorCode.BACKEND_REQUEST_FAILED: "pgmoneta rejected the request. Check the server name, backup identifier and user permissions.",

    ErrorCode.CONFIG_NOT_FOUND: "No configuration file found. Run 'pgmoneta-mcp init' to create one.",
    ErrorCode.CONFIG_INVALID: "The configuration file is invalid. Check it for syntax errors and wrong value types.",

    ErrorCode.UNKNOWN_ERROR: "An unexpected error occurred. Check the logs for more details.",
    ErrorCode.INTERNAL_ERROR: "An internal error occurred. Please report this issue.",
}


def get_error_guidance(error_code: ErrorCode) -> str:
    return ERROR_GUIDANCE.get(error_code, ERROR_GUIDANCE[ErrorCode.UNKNOWN_ERROR])


@dataclass
class StructuredLogEntry:
    """One JSON log entry. Fields left as None are omitted from the JSON."""
    timestamp: str
    level: str
    message: str
    error_code: Optional[str] = None
    context: Optional[Dict[str, Any]] = None
    guidance: Optional[str] = None

    def to_json(self) -> str:
        return json.dumps(
            {key: value for key, value in asdict(self).items() if value is not None},
            default=str,
        )

    @classmethod
    def from_json(cls, json_str: str) -> "StructuredLogEntry":
        return cls(**json.loads(json_str))

    @classmethod
    def create(
        cls,
        level: str,
        message: str,
        error_code: Optional[ErrorCode] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> "StructuredLogEntry":
        """Build an entry stamped with the current time and the code's guidance."""
        return cls(
            timestamp=datetime.now().isoformat(),
            level=level,
            message=message,
            error_code=error_code.value if error_code else None,
            context=context,
            guidance=get_error_guidance(error_code) if error_code else None,
        )


class LoggingError(Exception):
    """Raised when logging setup fails."""
    pass


def _gzip_namer(default_name: str) -> str:
    return default_name + ".gz"


def _gzip_rotator(source: str, dest: str) -> None:
    if not os.path.exists(source):
        return
    try:
        with open(source, "rb") as f_in, gzip.open(dest, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        os.remove(source)
    except OSError:
        # Keep the rotated data uncompressed rather than lose it
        if os.path.exists(source):
            os.replace(source, dest[: -len(".gz")])


class GzipRotatingFileHandler(RotatingFileHandler):
    """RotatingFileHandler whose rotated files are gzip-compressed (app.log.1.gz)."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.namer = _gzip_namer
        self.rotator = _gzip_rotator


def _get_log_level(level_str: str) -> int:
    name = level_str.upper()
    if name not in VALID_LOG_LEVELS:
        raise LoggingError(
            f"Invalid log level '{level_str}'. Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    return getattr(logging, name)


def _file_handler(path: Path, level: int, max_bytes: int, backup_count: int) -> logging.Handler:
    path = path.expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise LoggingError(f"Failed to create log directory {path.parent}: {e}")

    handler = GzipRotatingFileHandler(
        path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    return handler


def setup_logging(
    config: Optional[LoggingConfig] = None,
    log_file: Optional[Path] = None,
    error_log_file: Optional[Path] = None,
    level: Optional[str] = None,
) -> logging.Logger:
    """
    Configure the pgmoneta_mcp logger.

    Calling it again replaces the handlers installed by a previous call.

    Args:
        config: Logging settings. Explicit arguments override its fields.
        log_file: Main log file
        error_log_file: Error-only log file
        level: "DEBUG", "INFO", "WARNING" or "ERROR"

    Returns:
        The configured logger

    Raises:
        LoggingError: If a log directory cannot be created or the level is invalid
    """
    config = config or LoggingConfig()
    log_level = _get_log_level(level or config.level)

    handlers = [
        _file_handler(
            Path(log_file or config.log_file),
            log_level,
            config.log_max_bytes,
            config.log_backup_count,
        ),
        _file_handler(
            Path(error_log_file or config.error_log_file),
            logging.ERROR,
            config.log_max_bytes,
            config.log_backup_count,
        ),
        logging.StreamHandler(sys.stderr),
    ]
    handlers[-1].setLevel(log_level)

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    # Handlers do the filtering
    logger.setLevel(logging.DEBUG)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)


def log_structured(
    logger: logging.Logger,
    level: str,
    message: str,
    error_code: Optional[ErrorCode] = None,
    context: Optional[Dict[str, Any]] = None,
) -> StructuredLogEntry:
    """Log ``message`` as a JSON entry at ``level`` and return the entry."""
    entry = StructuredLogEntry.create(level, message, error_code, context)
    logger.log(getattr(logging, level.upper(), logging.INFO), entry.to_json())
    return entry


def log_structured_error(
    logger: logging.Logger,
    message: str,
    error_code: ErrorCode,
    context: Optional[Dict[str, Any]] = None,
) -> StructuredLogEntry:
    return log_structured(logger, "ERROR", message, error_code, context)


def parse_structured_log(log_line: str) -> Optional[StructuredLogEntry]:
    """
    Read the JSON entry back out of a formatted log line.

    Returns None for plain (non-structured) lines.
    """
    json_start = log_line.find("{")
    if json_start == -1:
        return None
    try:
        return StructuredLogEntry.from_json(log_line[json_start:])
    except (json.JSONDecodeError, TypeError):
        return None


def get_recent_errors(log_file: Path, max_entries: int = 10) -> List[StructuredLogEntry]:
    """Return up to ``max_entries`` of the latest structured ERROR entries, oldest first."""
    recent: deque = deque(maxlen=max_entries)
    try:
        with open(log_file, "r", encoding="utf-8") as f:
            for line in f:
                entry = parse_structured_log(line)
                if entry is not None and entry.level in ("ERROR", "CRITICAL"):
                    recent.append(entry)
    except FileNotFoundError:
        return []
    return list(recent)


# Checked in order; the first matching class wins
_EXCEPTION_CODES = [
    (ToolNotFound, ErrorCode.TOOL_NOT_FOUND),
    (InvalidParameters, ErrorCode.INVALID_PARAMETERS),
    (ConfigNotFoundError, ErrorCode.CONFIG_NOT_FOUND),
    (ConfigurationError, ErrorCode.CONFIG_INVALID),
    (ValidationError, ErrorCode.CONFIG_INVALID),
    (ConnectionError, ErrorCode.BACKEND_CONNECTION_FAILED),
    (TimeoutError, ErrorCode.BACKEND_TIMEOUT),
]


def map_exception_to_error_code(exception: Exception) -> ErrorCode:
    """
    Pick the ErrorCode to log for an exception.

    Exceptions carrying an ErrorCode ``kind`` (pgmoneta client errors)
    use it directly. Others are matched by class, then by message.
    """
    kind = getattr(exception, "kind", None)
    if isinstance(kind, ErrorCode):
        return kind

    for exc_class, code in _EXCEPTION_CODES:
        if isinstance(exception, exc_class):
            return code

    message = str(exception).lower()
    if "timed out" in message or "timeout" in message:
        return ErrorCode.BACKEND_TIMEOUT
    if "connection" in message or "refused" in message:
        return ErrorCode.BACKEND_CONNECTION_FAILED
    return ErrorCode.UNKNOWN_ERROR
