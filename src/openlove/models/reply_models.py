"""State of a single send cycle tracked by the chat controller.

A send cycle starts when the user submits non-empty text and ends when the
pending transcript entry has been replaced by the reply (or by a fallback
notice). These models are what the presentation layer reads to drive
"awaiting reply" indicators and the optional error banner.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from ..ai.client import ReplyResult
    from ..ai.errors import ReplyFailure


def _utcnow() -> datetime:
    """Return current UTC time."""
    return datetime.now(timezone.utc)


class ChatState(Enum):
    """Lifecycle of a send cycle.

    Values:
        IDLE: No request in flight.
        QUEUED: Submitted while another cycle owns the pending slot.
        SENDING: User and pending entries are being appended.
        AWAITING: The webhook call is in flight.
        RESOLVED: The pending entry was replaced by a real reply.
        FALLBACK_RESOLVED: The pending entry was replaced by a fallback notice.
        ABANDONED: The cycle was cancelled before a reply arrived.
    """

    IDLE = "idle"
    QUEUED = "queued"
    SENDING = "sending"
    AWAITING = "awaiting"
    RESOLVED = "resolved"
    FALLBACK_RESOLVED = "fallback_resolved"
    ABANDONED = "abandoned"


_TERMINAL_STATES = frozenset(
    {ChatState.RESOLVED, ChatState.FALLBACK_RESOLVED, ChatState.ABANDONED}
)


@dataclass(slots=True)
class ReplyRequest:
    """Bookkeeping for one submitted message.

    Attributes:
        message: The submitted user text.
        request_id: Unique identifier of the cycle.
        status: Current lifecycle state.
        user_entry_id: Transcript id of the user entry, once appended.
        pending_entry_id: Transcript id of the placeholder, once appended.
        result: The webhook outcome, once known.
        created_at: When the message was submitted.
        completed_at: When the cycle reached a terminal state.
    """

    message: str
    request_id: str = field(default_factory=lambda: f"reply-{uuid.uuid4().hex[:8]}")
    status: ChatState = ChatState.QUEUED
    user_entry_id: str | None = None
    pending_entry_id: str | None = None
    result: ReplyResult | None = None
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None

    @property
    def is_awaiting(self) -> bool:
        return self.status in (ChatState.SENDING, ChatState.AWAITING)

    @property
    def is_finished(self) -> bool:
        return self.status in _TERMINAL_STATES

    @property
    def failure(self) -> ReplyFailure | None:
        return self.result.failure if self.result is not None else None

    def mark_sending(self, user_entry_id: str, pending_entry_id: str) -> None:
        self.status = ChatState.SENDING
        self.user_entry_id = user_entry_id
        self.pending_entry_id = pending_entry_id

    def mark_awaiting(self) -> None:
        self.status = ChatState.AWAITING

    def mark_resolved(self, result: ReplyResult) -> None:
        self.result = result
        self.status = ChatState.FALLBACK_RESOLVED if result.was_fallback else ChatState.RESOLVED
        self.completed_at = _utcnow()

    def mark_abandoned(self) -> None:
        self.status = ChatState.ABANDONED
        self.completed_at = _utcnow()


__all__ = ["ChatState", "ReplyRequest"]
