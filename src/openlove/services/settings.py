"""Deployment settings for the chat core.

Nothing is persisted: settings are dataclass defaults, optionally replaced by
caller overrides and then by ``OPENLOVE_*`` environment variables. The
webhook URL and credentials are deployment configuration and never live in
code.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping

from ..ai.client import ClientSettings

__all__ = [
    "Settings",
    "load_settings",
    "redact_secret",
    "redact_headers",
]

LOGGER = logging.getLogger(__name__)
_ENV_OVERRIDES: Mapping[str, str] = {
    "OPENLOVE_WEBHOOK_URL": "webhook_url",
    "OPENLOVE_USER_ID": "user_id",
    "OPENLOVE_AUTH_TOKEN": "auth_token",
    "OPENLOVE_API_KEY": "api_key",
    "OPENLOVE_GREETING": "greeting",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "OPENLOVE_DEBUG_LOGGING": "debug_logging",
}
_FLOAT_ENV_OVERRIDES: Mapping[str, str] = {
    "OPENLOVE_REQUEST_TIMEOUT": "request_timeout",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "OPENLOVE_HISTORY_WINDOW": "history_window",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}
_SENSITIVE_HEADERS = {"authorization", "x-api-key", "proxy-authorization", "cookie"}

DEFAULT_WEBHOOK_URL = "https://your-n8n-instance.com/webhook/openlove-ai"
DEFAULT_GREETING = "Hi there ! I'm OpenLove AI.\nHow can I help you today?"


@dataclass(slots=True)
class Settings:
    """Per-deployment configuration of the chat core."""

    webhook_url: str = DEFAULT_WEBHOOK_URL
    request_timeout: float = 30.0
    user_id: str = "anonymous"
    history_window: int = 5
    auth_token: str = ""
    api_key: str = ""
    default_headers: dict[str, str] = field(default_factory=dict)
    greeting: str = DEFAULT_GREETING
    debug_logging: bool = False

    def request_headers(self) -> Dict[str, str]:
        """Return deployment headers including configured credentials."""

        headers = dict(self.default_headers)
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        if self.api_key:
            headers["X-API-Key"] = self.api_key
        return headers

    def client_settings(self) -> ClientSettings:
        return ClientSettings(
            webhook_url=self.webhook_url,
            request_timeout=self.request_timeout,
            user_id=self.user_id,
            history_window=self.history_window,
            default_headers=self.request_headers(),
            debug_logging=self.debug_logging,
        )

    def secrets(self) -> tuple[str, ...]:
        """Values that must never appear in log output."""

        return tuple(value for value in (self.auth_token, self.api_key) if value)


def load_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Build settings from defaults, ``overrides`` and environment variables."""

    settings = Settings()
    if overrides:
        settings = _apply_overrides(settings, overrides, source="runtime")
    settings = _apply_env_overrides(settings)
    LOGGER.debug(
        "Settings loaded: webhook_url=%s timeout=%.1fs history_window=%d headers=%s",
        settings.webhook_url,
        settings.request_timeout,
        settings.history_window,
        redact_headers(settings.request_headers()),
    )
    return settings


def _apply_overrides(
    settings: Settings,
    overrides: Mapping[str, Any],
    *,
    source: str,
) -> Settings:
    allowed = {item.name for item in fields(Settings)}
    filtered: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed or value is None:
            continue
        filtered[key] = value
    headers_override = filtered.get("default_headers")
    if isinstance(headers_override, Mapping):
        merged_headers = dict(settings.default_headers)
        merged_headers.update(headers_override)
        filtered["default_headers"] = merged_headers
    if filtered:
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        settings = replace(settings, **filtered)
    return settings


def _apply_env_overrides(settings: Settings) -> Settings:
    overrides: Dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value
    for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is not None:
            overrides[field_name] = value.strip().lower() in _TRUE_VALUES
    for env_name, field_name in _INT_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = int(value, 10)
        except ValueError:
            LOGGER.warning(
                "Environment override %s=%s is not a valid integer",
                env_name,
                value,
            )
    for env_name, field_name in _FLOAT_ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value is None:
            continue
        try:
            overrides[field_name] = float(value)
        except ValueError:
            LOGGER.warning(
                "Environment override %s=%s is not a valid float", env_name, value
            )
    if overrides:
        settings = _apply_overrides(settings, overrides, source="environment")
    return settings


def redact_secret(value: str) -> str:
    stripped = (value or "").strip()
    if not stripped:
        return ""
    if len(stripped) <= 4:
        return "*" * len(stripped)
    return f"{stripped[:2]}{'*' * (len(stripped) - 4)}{stripped[-2:]}"


def redact_headers(headers: Mapping[str, str] | None) -> dict[str, str]:
    if not isinstance(headers, Mapping):
        return {}
    redacted: dict[str, str] = {}
    for key, value in headers.items():
        if key.lower() in _SENSITIVE_HEADERS:
            redacted[key] = redact_secret(value)
        else:
            redacted[key] = value
    return redacted
