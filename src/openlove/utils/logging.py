"""Logging helpers for the OpenLove chat core.

The package itself only ever calls ``logging.getLogger(__name__)``; hosts that
embed the core call :func:`setup_logging` once to get a rotating log file, an
optional console stream and masking of deployment secrets (webhook tokens and
API keys) in every emitted record.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
from pathlib import Path
from typing import Iterable

__all__ = ["setup_logging", "get_logger", "get_log_path", "SecretMaskingFilter"]

_DEFAULT_LOG_DIR = Path.home() / ".openlove" / "logs"
_LOG_FILE_NAME = "openlove.log"
_NOISY_LOGGERS: tuple[str, ...] = ("asyncio", "httpx", "httpcore")
_MASK = "***"
_CONFIGURED = False
_LOG_PATH: Path | None = None


class SecretMaskingFilter(logging.Filter):
    """Replace configured secret values in formatted log messages."""

    def __init__(self, secrets: Iterable[str] = ()) -> None:
        super().__init__()
        # Longest first so a token containing another token is fully masked.
        self._secrets = sorted({s for s in secrets if s and len(s) >= 4}, key=len, reverse=True)

    @property
    def secrets(self) -> tuple[str, ...]:
        return tuple(self._secrets)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self._secrets:
            return True
        message = record.getMessage()
        masked = message
        for secret in self._secrets:
            masked = masked.replace(secret, _MASK)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console: bool = True,
    secrets: Iterable[str] = (),
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Configure root logging with a rotating file and optional console handler."""

    global _CONFIGURED, _LOG_PATH
    if _CONFIGURED and not force and _LOG_PATH is not None:
        return _LOG_PATH

    target_dir = _resolve_log_dir(log_dir)
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / _LOG_FILE_NAME

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    masking = SecretMaskingFilter(secrets)

    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler.addFilter(masking)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    _quiet_transport_loggers(level)

    _CONFIGURED = True
    _LOG_PATH = log_path
    return log_path


def get_logger(name: str) -> logging.Logger:
    """Return a module-specific logger."""

    return logging.getLogger(name)


def get_log_path() -> Path | None:
    """Return the currently configured log file if available."""

    return _LOG_PATH


def _resolve_log_dir(log_dir: Path | str | None) -> Path:
    env_override = os.environ.get("OPENLOVE_LOG_DIR")
    return Path(log_dir or env_override or _DEFAULT_LOG_DIR).expanduser()


def _quiet_transport_loggers(root_level: int) -> None:
    # httpx logs every request line at INFO.
    quiet_level = max(logging.WARNING, root_level)
    for logger_name in _NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(quiet_level)
