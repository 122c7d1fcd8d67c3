"""Failure taxonomy for advice webhook calls and the chat core.

Every webhook failure is represented by a :class:`ReplyFailure` and turned
into a caller-friendly fallback message, so the transcript always receives
an assistant-style reply and the conversation can continue.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FailureKind(Enum):
    """Why a webhook call did not produce a usable reply."""

    TIMEOUT = "timeout"
    TRANSPORT = "transport"
    MALFORMED = "malformed"
    EMPTY = "empty"


EMPTY_RESPONSE_NOTICE = (
    "I received your message, but the response came back empty. "
    "Could you try rephrasing your question?"
)
TIMEOUT_NOTICE = (
    "Sorry, that took longer than expected. "
    "Please try again with a shorter message."
)
NOT_FOUND_NOTICE = (
    "I couldn't reach the advice service. The endpoint may be misconfigured, "
    "so please check the webhook URL."
)
AUTH_NOTICE = (
    "I couldn't reach the advice service because of an authentication issue. "
    "Please check the access credentials."
)
UNAVAILABLE_NOTICE = (
    "The advice service is temporarily unavailable. Please try again in a few minutes."
)
GENERIC_NOTICE = (
    "I apologize, but I'm experiencing some technical difficulties. "
    "Please try asking your question again in a moment."
)


def fallback_message(kind: FailureKind, status_code: int | None = None) -> str:
    """Return the assistant-style notice used in place of a failed reply."""

    if kind is FailureKind.TIMEOUT:
        return TIMEOUT_NOTICE
    if kind is FailureKind.EMPTY:
        return EMPTY_RESPONSE_NOTICE
    if kind is FailureKind.TRANSPORT and status_code is not None:
        if status_code == 404:
            return NOT_FOUND_NOTICE
        if status_code in (401, 403):
            return AUTH_NOTICE
        if 500 <= status_code < 600:
            return UNAVAILABLE_NOTICE
    return GENERIC_NOTICE


@dataclass(eq=False)
class ReplyFailure(Exception):
    """A classified webhook failure.

    Attributes:
        kind: Failure category.
        message: Diagnostic description for logs and the error banner.
        status_code: HTTP status for transport failures, when one was received.
    """

    kind: FailureKind
    message: str = ""
    status_code: int | None = None

    def __post_init__(self) -> None:
        Exception.__init__(self, self.message or self.kind.value)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.kind.value} ({self.status_code}): {self.message}"
        return f"{self.kind.value}: {self.message}"

    def fallback_text(self) -> str:
        return fallback_message(self.kind, self.status_code)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.status_code is not None:
            payload["status_code"] = self.status_code
        return payload


class PendingEntryError(ValueError):
    """Raised when a second pending entry would be added to a transcript."""


class CategoryLockedError(RuntimeError):
    """Raised when a chat session's category would change after it started."""


__all__ = [
    "AUTH_NOTICE",
    "CategoryLockedError",
    "EMPTY_RESPONSE_NOTICE",
    "FailureKind",
    "GENERIC_NOTICE",
    "NOT_FOUND_NOTICE",
    "PendingEntryError",
    "ReplyFailure",
    "TIMEOUT_NOTICE",
    "UNAVAILABLE_NOTICE",
    "fallback_message",
]
