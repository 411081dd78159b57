"""Centralized logging configuration for the name wallet.

This module provides:
- Configurable log levels (DEBUG for dev, INFO for prod)
- Sensitive data sanitization (private keys, passphrases, unrevealed salts)
- User-friendly error message mapping for name operations
- Structured logging with context fields
"""

from __future__ import annotations

import json
import logging
import os
import re
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LoggingConfig:
    log_level: LogLevel = LogLevel.INFO
    log_to_file: bool = True
    log_to_stdout: bool = False
    log_dir: Path | None = None
    log_filename: str = "namewallet.log"
    sanitize_sensitive: bool = True
    json_format: bool = False

    @classmethod
    def from_environment(cls) -> "LoggingConfig":
        env_level = os.getenv("NAMEWALLET_LOG_LEVEL", "INFO").upper()
        try:
            log_level = LogLevel(env_level)
        except ValueError:
            log_level = LogLevel.INFO

        log_to_stdout = os.getenv("NAMEWALLET_LOG_STDOUT", "").lower() in (
            "1",
            "true",
            "yes",
        )

        return cls(
            log_level=log_level,
            log_to_stdout=log_to_stdout,
            json_format=os.getenv("NAMEWALLET_LOG_FORMAT", "").lower() == "json",
        )


# Transaction ids are 64 hex chars too, so keys are only redacted when labelled.
SENSITIVE_PATTERNS: list[tuple[re.Pattern[str], str]] = [
    (
        re.compile(
            r"(private[_-]?key['\"]?\s*[:=]\s*['\"]?)([A-Za-z0-9]{51,64})",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            r"((?:password|passphrase)['\"]?\s*[:=]\s*['\"]?)([^\s'\"]+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
    (
        re.compile(
            r"(secret[_-]?rand(?:omness)?['\"]?\s*[:=]\s*['\"]?)([A-Fa-f0-9]+)",
            re.IGNORECASE,
        ),
        r"\1[REDACTED]",
    ),
]

ADDRESS_PATTERN = re.compile(r"\b[NMmn][1-9A-HJ-NP-Za-km-z]{25,34}\b")


def sanitize_message(message: str, preserve_addresses: bool = True) -> str:
    if not message:
        return message

    sanitized = message
    for pattern, replacement in SENSITIVE_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)

    if not preserve_addresses and ADDRESS_PATTERN.search(sanitized):
        sanitized = ADDRESS_PATTERN.sub("[ADDRESS_REDACTED]", sanitized)

    return sanitized


def sanitize_dict(
    data: dict[str, Any], preserve_addresses: bool = True
) -> dict[str, Any]:
    result = {}
    for key, value in data.items():
        key_lower = key.lower()
        if any(
            sensitive in key_lower
            for sensitive in ["private_key", "privatekey", "password", "passphrase", "secret"]
        ):
            result[key] = "[REDACTED]"
        elif isinstance(value, str):
            result[key] = sanitize_message(value, preserve_addresses)
        elif isinstance(value, dict):
            result[key] = sanitize_dict(value, preserve_addresses)
        elif isinstance(value, list):
            result[key] = [
                sanitize_dict(item, preserve_addresses)
                if isinstance(item, dict)
                else sanitize_message(str(item), preserve_addresses)
                if isinstance(item, str)
                else item
                for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass(frozen=True)
class ErrorMapping:
    error_pattern: str
    user_message: str
    suggest_action: str | None = None


ERROR_MAPPINGS: list[ErrorMapping] = [
    ErrorMapping(
        "timeout|timed out",
        "Connection timed out. The node may be slow or unavailable.",
        "Try again later or check your network connection.",
    ),
    ErrorMapping(
        "connection refused|cannot connect|connection error",
        "Unable to connect to the node.",
        "Check that the node is running and reachable.",
    ),
    ErrorMapping(
        "insufficient funds|requires a transaction fee|not enough balance",
        "Insufficient balance for this name operation.",
        "Ensure you have enough coins for the name amount and fees.",
    ),
    ErrorMapping(
        "invalid.*address|address.*invalid",
        "The address provided is not valid.",
        "Please check the destination address format.",
    ),
    ErrorMapping(
        "pending operations",
        "Another operation on this name is still unconfirmed.",
        "Wait for the pending transaction to confirm and try again.",
    ),
    ErrorMapping(
        "already active|already registered|already pending",
        "This name is already registered or being registered.",
        "Choose another name or wait for it to expire.",
    ),
    ErrorMapping(
        "not in (?:the |your )?wallet",
        "The transaction holding this name is not in your wallet.",
        "Make sure the wallet that registered the name is loaded.",
    ),
    ErrorMapping(
        "different random value|wasn't a name_new|not a name",
        "The stored registration does not match its commitment.",
        "The registration data may be corrupted; register the name again.",
    ),
    ErrorMapping(
        "malformed",
        "A name script could not be parsed.",
        "The transaction may not have been created by this wallet.",
    ),
    ErrorMapping(
        "unauthorized|forbidden|401|403",
        "Access denied. RPC authentication failed.",
        "Check the RPC username and password.",
    ),
    ErrorMapping(
        "network.*error|networkerror",
        "A network error occurred.",
        "Check your internet connection.",
    ),
]


def get_user_friendly_error(error: Exception | str) -> tuple[str, str | None]:
    # NameOperationError and NetworkError both carry a plain ``message``
    text = getattr(error, "message", None) or str(error)
    for mapping in ERROR_MAPPINGS:
        if re.search(mapping.error_pattern, text, re.IGNORECASE):
            return mapping.user_message, mapping.suggest_action
    return "An unexpected error occurred.", None


def format_error_for_user(error: Exception | str) -> str:
    user_message, suggestion = get_user_friendly_error(error)
    return f"{user_message} {suggestion}" if suggestion else user_message


def _record_context(record: logging.LogRecord) -> dict[str, Any]:
    context = getattr(record, "context", None)
    return context if isinstance(context, dict) else {}


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, with ``log_with_context`` fields under ``context``."""

    def __init__(self, sanitize: bool = True, preserve_addresses: bool = True):
        super().__init__()
        self.sanitize = sanitize
        self.preserve_addresses = preserve_addresses

    def _clean(self, text: str) -> str:
        if not self.sanitize:
            return text
        return sanitize_message(text, self.preserve_addresses)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": self._clean(record.getMessage()),
        }
        context = _record_context(record)
        if context:
            entry["context"] = (
                sanitize_dict(context, self.preserve_addresses) if self.sanitize else context
            )
        if record.exc_info:
            entry["exception"] = self._clean(self.formatException(record.exc_info))
        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Plain text lines; context fields are appended as ``key=value`` pairs."""

    def __init__(self, sanitize: bool = True, preserve_addresses: bool = True):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.sanitize = sanitize
        self.preserve_addresses = preserve_addresses

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = _record_context(record)
        if context:
            if self.sanitize:
                context = sanitize_dict(context, self.preserve_addresses)
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"
        if self.sanitize:
            line = sanitize_message(line, self.preserve_addresses)
        return line


class ContextAdapter(logging.LoggerAdapter):
    """Logger adapter that merges its bound fields into ``record.context``."""

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None):
        super().__init__(logger, context or {})

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        if self.extra:
            extra["context"] = {**self.extra, **extra.get("context", {})}
        kwargs["extra"] = extra
        return msg, kwargs

    def with_context(self, **fields: Any) -> "ContextAdapter":
        return ContextAdapter(self.logger, {**self.extra, **fields})


def setup_logging(config: LoggingConfig | None = None) -> list[logging.Handler]:
    """Install the wallet's handlers on the root logger.

    Handlers from an earlier call are replaced, so calling this again with a
    new config reconfigures logging instead of duplicating output.
    """
    if config is None:
        config = LoggingConfig.from_environment()

    root_logger = logging.getLogger()
    root_logger.setLevel(config.log_level.value)
    for handler in [h for h in root_logger.handlers if getattr(h, "_namewallet", False)]:
        root_logger.removeHandler(handler)
        handler.close()

    handlers: list[logging.Handler] = []
    if config.log_to_file:
        log_dir = config.log_dir or Path.home() / ".config" / "namewallet"
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(log_dir / config.log_filename, mode="a", encoding="utf-8")
        )
    if config.log_to_stdout:
        handlers.append(logging.StreamHandler(sys.stdout))

    for handler in handlers:
        if config.json_format:
            handler.setFormatter(StructuredFormatter(sanitize=config.sanitize_sensitive))
        else:
            handler.setFormatter(HumanReadableFormatter(sanitize=config.sanitize_sensitive))
        handler._namewallet = True
        root_logger.addHandler(handler)
    return handlers


def get_logger(name: str, context: dict[str, Any] | None = None) -> ContextAdapter:
    return ContextAdapter(logging.getLogger(name), context)


def log_with_context(
    logger: logging.Logger | ContextAdapter,
    level: int,
    message: str,
    **context: Any,
) -> None:
    """Log ``message`` with ``context`` attached as ``record.context``."""
    if isinstance(logger, ContextAdapter):
        logger.with_context(**context).log(level, message)
    else:
        logger.log(level, message, extra={"context": context})


__all__ = [
    "LogLevel",
    "LoggingConfig",
    "ContextAdapter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "setup_logging",
    "get_logger",
    "log_with_context",
    "sanitize_message",
    "sanitize_dict",
    "get_user_friendly_error",
    "format_error_for_user",
]
