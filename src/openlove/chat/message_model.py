"""Chat transcript entries and the small value types around them."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict


def _utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""

    return datetime.now(timezone.utc)


def new_entry_id() -> str:
    """Return a fresh, never reused entry identifier."""

    return f"entry-{uuid.uuid4().hex}"


class EntryRole(Enum):
    """Who authored a transcript entry."""

    USER = "user"
    ASSISTANT = "assistant"
    PENDING = "pending"

    @property
    def wire_type(self) -> str:
        # The webhook workflow labels assistant turns as "ai".
        return "ai" if self is EntryRole.ASSISTANT else self.value


class Screen(Enum):
    """Screens the presentation layer can route between."""

    WELCOME = "welcome"
    CHAT = "chat"


class Category(Enum):
    """Advice category chosen on the welcome screen."""

    DATING = "dating"
    BREAKUP = "breakup"
    ROMANCE = "romance"
    COMMUNICATION = "communication"
    NONE = "none"

    @property
    def title(self) -> str:
        return _CATEGORY_COPY[self][0]

    @property
    def description(self) -> str:
        return _CATEGORY_COPY[self][1]

    @classmethod
    def coerce(cls, value: "Category | str | None") -> "Category":
        """Return the category for ``value``; blank values mean no category."""

        if isinstance(value, Category):
            return value
        normalized = (value or "").strip().lower()
        if not normalized:
            return cls.NONE
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(f"Unknown category: {value!r}") from None

    @classmethod
    def selectable(cls) -> tuple["Category", ...]:
        """Categories offered as cards on the welcome screen."""

        return tuple(category for category in cls if category is not cls.NONE)


_CATEGORY_COPY: Dict[Category, tuple[str, str]] = {
    Category.DATING: ("Dating", "Navigate the dating world with Confidence"),
    Category.BREAKUP: ("Breakup Healing", "Heal gently, grow stronger within"),
    Category.ROMANCE: ("Love and Romance", "Deepen love, elevate romance"),
    Category.COMMUNICATION: ("Communication", "Express yourself and understand better"),
    Category.NONE: ("General", "Ask anything about your relationships"),
}


@dataclass(slots=True, frozen=True)
class Entry:
    """One row of the chat transcript."""

    role: EntryRole
    content: str = ""
    id: str = field(default_factory=new_entry_id)
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.role is EntryRole.PENDING and self.content:
            raise ValueError("Pending entries carry no content")

    @classmethod
    def user(cls, content: str) -> "Entry":
        return cls(role=EntryRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "Entry":
        return cls(role=EntryRole.ASSISTANT, content=content)

    @classmethod
    def pending(cls) -> "Entry":
        return cls(role=EntryRole.PENDING)

    @property
    def is_pending(self) -> bool:
        return self.role is EntryRole.PENDING

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the entry for the outbound history window."""

        return {
            "id": self.id,
            "type": self.role.wire_type,
            "content": self.content,
            "timestamp": self.created_at.isoformat(),
        }


@dataclass(slots=True, frozen=True)
class Suggestion:
    """Inline completion for the composer.

    ``remainder`` is the part of ``full`` beyond what the user typed; the
    overlay renders it after the input, while accepting replaces the input
    with ``full``.
    """

    remainder: str
    full: str


__all__ = [
    "Category",
    "Entry",
    "EntryRole",
    "Screen",
    "Suggestion",
    "new_entry_id",
]
