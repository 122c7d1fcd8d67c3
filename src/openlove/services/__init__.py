"""Service layer helpers (deployment settings)."""

from .settings import Settings, load_settings, redact_headers, redact_secret

__all__ = ["Settings", "load_settings", "redact_headers", "redact_secret"]
