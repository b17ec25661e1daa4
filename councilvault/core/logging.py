"""
Secure Logging Module
=====================

Logging for the envelope engine with redaction of key material.

Components log through ``logging.getLogger("councilvault.<area>")`` and
record only the shape of an operation: recipient counts, byte lengths,
which step failed. ``configure_logging`` attaches redacting handlers to
the package logger.

Redacted:
    - name=value pairs for private keys, seeds, secrets and signatures
    - hex runs of 64+ digits (keys, seeds, wrapped keys, signatures)
    - base64 runs of 56+ characters (encrypted fields)
    - bytes arguments, whatever their content

Member addresses (0x + 40 hex digits) stay readable.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, Optional, Pattern, Sequence

from councilvault.core.config import LoggingConfig

PACKAGE_LOGGER: Final[str] = "councilvault"

_REDACTED_TEXT: Final[str] = "[REDACTED]"

_REDACTIONS: Final[tuple[tuple[Pattern[str], str], ...]] = (
    (re.compile(r'(?i)\b(private[_ -]?key|seed|secret|signature|sig)\s*[=:]\s*["\']?[^\s"\',]+["\']?'),
     rf"\1={_REDACTED_TEXT}"),
    (re.compile(r'(?i)\b(?:0x)?[0-9a-f]{64,}\b'), _REDACTED_TEXT),
    (re.compile(r'[A-Za-z0-9+/]{56,}={0,2}'), _REDACTED_TEXT),
)

_CONSOLE_DATEFMT: Final[str] = "%H:%M:%S"
_FILE_FORMAT: Final[str] = (
    "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)


def redact(text: str, extra: Sequence[Pattern[str]] = ()) -> str:
    """Replace key-like material in text with [REDACTED]."""
    for pattern, replacement in _REDACTIONS:
        text = pattern.sub(replacement, text)
    for pattern in extra:
        text = pattern.sub(_REDACTED_TEXT, text)
    return text


class SecureLogFilter(logging.Filter):
    """
    Handler filter that redacts the rendered log message.

    The message is rendered with its arguments first, then redacted, so a
    secret passed as an argument is caught the same way as one written
    into the format string. Bytes arguments are never rendered.
    """

    def __init__(self, name: str = "", additional_patterns: Optional[list[Pattern[str]]] = None) -> None:
        super().__init__(name)
        self._additional_patterns = tuple(additional_patterns or ())

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.args, tuple):
            record.args = tuple(
                _REDACTED_TEXT if isinstance(arg, (bytes, bytearray, memoryview)) else arg
                for arg in record.args
            )
        try:
            message = record.getMessage()
        except (TypeError, ValueError):
            message = str(record.msg)

        record.msg = redact(message, self._additional_patterns)
        record.args = None
        return True


class StructuredLogFormatter(logging.Formatter):
    """JSON-lines formatter for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        component = record.name
        if component.startswith(f"{PACKAGE_LOGGER}."):
            component = component[len(PACKAGE_LOGGER) + 1:]

        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "component": component,
            "message": record.getMessage(),
            "location": f"{record.funcName}:{record.lineno}",
        }
        if record.exc_info:
            entry["exception"] = type(record.exc_info[1]).__name__

        return json.dumps(entry)


def _console_handler(fmt: str, secure_filter: SecureLogFilter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_CONSOLE_DATEFMT))
    handler.addFilter(secure_filter)
    return handler


def _file_handler(
    log_path: Path,
    enable_json: bool,
    max_file_size: int,
    backup_count: int,
    secure_filter: SecureLogFilter,
) -> logging.Handler:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_path),
        maxBytes=max_file_size,
        backupCount=backup_count,
        encoding="utf-8",
    )
    if enable_json:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handler.addFilter(secure_filter)
    return handler


def get_secure_logger(
    name: str,
    log_dir: Optional[Path] = None,
    level: str = "INFO",
    enable_console: bool = True,
    enable_json: bool = False,
    max_file_size: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    fmt: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
) -> logging.Logger:
    """
    Create a logger whose handlers redact key material.

    Args:
        name: Logger name (normally "councilvault")
        log_dir: Directory for a rotating <name>.log (no file output if None)
        level: Logging level name
        enable_console: Whether to write to stderr
        enable_json: Whether the file output is JSON lines
        max_file_size: Size in bytes that triggers rotation
        backup_count: Rotated files to keep
        fmt: Console format string

    Returns:
        The configured logger; an already configured logger is returned as is
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(level.upper())
    secure_filter = SecureLogFilter()

    if enable_console:
        logger.addHandler(_console_handler(fmt, secure_filter))
    if log_dir is not None:
        log_path = Path(log_dir).resolve() / f"{name.replace('.', '_')}.log"
        logger.addHandler(
            _file_handler(log_path, enable_json, max_file_size, backup_count, secure_filter)
        )

    # Records stop here instead of reaching unfiltered root handlers
    logger.propagate = False
    return logger


def configure_logging(config: LoggingConfig, enable_json: bool = False) -> logging.Logger:
    """
    Attach redacting handlers to the package logger.

    Call once at application startup; component loggers
    ("councilvault.envelope", "councilvault.identity", ...) propagate
    to it.
    """
    return get_secure_logger(
        PACKAGE_LOGGER,
        log_dir=config.log_dir,
        level=config.level,
        enable_console=config.enable_console,
        enable_json=enable_json,
        fmt=config.format,
    )
