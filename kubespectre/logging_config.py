"""
Secure logging configuration for kubespectre.

Audit runs talk to an API server with bearer tokens and client certificates,
and checker errors echo API responses back into the log. This module makes
sure none of that leaks:
- A filter redacts tokens, JWTs and key=value secrets
- A formatter strips control characters to prevent log injection
- An optional JSON formatter emits one object per line

Everything logs under the "kubespectre" namespace on stderr, so stdout stays
reserved for the report.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from datetime import datetime, timezone
from typing import Any

from kubespectre.constants import SECRET_KEYWORDS, SECRET_PATTERNS

ROOT_LOGGER = "kubespectre"


class SecretFilter(logging.Filter):
    """
    Filter that redacts potential secrets from log messages.

    Scans message and arguments for token patterns and replaces them with
    [REDACTED].
    """

    REDACTED = "[REDACTED]"

    def __init__(self, name: str = "") -> None:
        super().__init__(name)
        self._secret_keywords_pattern = re.compile(
            r"(?i)(" + "|".join(re.escape(kw) for kw in sorted(SECRET_KEYWORDS)) + r")\s*[:=]\s*\S+",
        )

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and sanitize the log record."""
        if record.msg:
            record.msg = self._sanitize(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: self._sanitize(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    self._sanitize(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True

    def _sanitize(self, text: str) -> str:
        """Remove potential secrets from text."""
        result = text

        for pattern in SECRET_PATTERNS.values():
            result = pattern.sub(self.REDACTED, result)

        result = self._secret_keywords_pattern.sub(
            lambda m: f"{m.group(1)}={self.REDACTED}",
            result,
        )

        return result


class SanitizingFormatter(logging.Formatter):
    """
    Formatter that sanitizes log output to prevent log injection.

    Resource names and API error bodies are attacker-influenced, so newlines
    and control characters are escaped.
    """

    CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        message = self.CONTROL_CHARS.sub("", message)
        return message.replace("\n", "\\n").replace("\r", "\\r")


class JsonFormatter(logging.Formatter):
    """Single-line JSON formatter for log aggregation systems."""

    # Attributes present on every LogRecord; anything else came from extra=
    _RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
        "message",
        "asctime",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in self._RESERVED
        }
        if extra:
            log_data["extra"] = extra

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    no_color: bool = False,
) -> logging.Logger:
    """
    Set up logging for the kubespectre namespace.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output structured JSON logs
        no_color: If True, disable ANSI colors

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.addFilter(SecretFilter())

    if json_output:
        formatter: logging.Formatter = JsonFormatter()
    else:
        if no_color:
            format_str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        else:
            format_str = (
                "\033[90m%(asctime)s\033[0m "
                "[\033[1m%(levelname)s\033[0m] "
                "\033[36m%(name)s\033[0m: %(message)s"
            )
        formatter = SanitizingFormatter(format_str, datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the kubespectre namespace.

    Args:
        name: Logger name (prefixed with 'kubespectre.' if needed)
    """
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
