"""Ordered chat transcript with a single reconcilable pending slot."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Iterator, List

from ..ai.errors import PendingEntryError
from ..events import EntryAppended, EventBus, PendingDiscarded, PendingResolved
from .message_model import Entry, EntryRole

LOGGER = logging.getLogger(__name__)


class TranscriptStore:
    """Append-only log of chat entries, oldest first.

    The only in-place mutation is replacing the pending placeholder with the
    terminal entry that resolves it. At most one pending entry exists at a
    time; appending a second one raises :class:`PendingEntryError`.

    Mutations swap whole list slots, and :meth:`snapshot` copies into a tuple,
    so readers observe either the pre- or post-resolution transcript.
    """

    def __init__(self, *, event_bus: EventBus | None = None) -> None:
        self._entries: List[Entry] = []
        self._bus = event_bus

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def snapshot(self) -> tuple[Entry, ...]:
        """Return the transcript in conversation order."""

        return tuple(self._entries)

    def recent(self, count: int) -> tuple[Entry, ...]:
        """Return the last ``count`` settled (non-pending) entries."""

        if count <= 0:
            return ()
        settled = [entry for entry in self._entries if not entry.is_pending]
        return tuple(settled[-count:])

    @property
    def pending(self) -> Entry | None:
        index = self._pending_index()
        return self._entries[index] if index is not None else None

    @property
    def has_pending(self) -> bool:
        return self._pending_index() is not None

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.snapshot())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def append(self, entry: Entry) -> Entry:
        """Add ``entry`` at the end and return the stored entry."""

        if entry.is_pending and self.has_pending:
            raise PendingEntryError("Transcript already holds a pending entry")
        appended = self._store(entry)
        self._publish(appended)
        return appended.entry

    def append_exchange(self, content: str) -> tuple[Entry, Entry]:
        """Append a user entry and its pending placeholder as one step.

        Both entries are in place before either ``EntryAppended`` event is
        published, so observers never see the user entry on its own.
        """

        if self.has_pending:
            raise PendingEntryError("Transcript already holds a pending entry")
        user = self._store(Entry.user(content))
        pending = self._store(Entry.pending())
        self._publish(user)
        self._publish(pending)
        return user.entry, pending.entry

    def append_user(self, content: str) -> Entry:
        return self.append(Entry.user(content))

    def append_assistant(self, content: str) -> Entry:
        return self.append(Entry.assistant(content))

    def append_pending(self) -> Entry:
        return self.append(Entry.pending())

    def resolve_pending(self, content: str, role: EntryRole = EntryRole.ASSISTANT) -> Entry:
        """Replace the pending entry in place; append when there is none."""

        if role is EntryRole.PENDING:
            raise ValueError("A pending entry cannot be resolved into another pending entry")
        index = self._pending_index()
        if index is None:
            LOGGER.debug("resolve_pending without a pending entry; appending instead")
            return self.append(Entry(role=role, content=content))

        placeholder = self._entries[index]
        resolved = Entry(role=role, content=content)
        if resolved.created_at < placeholder.created_at:
            resolved = replace(resolved, created_at=placeholder.created_at)
        self._entries[index] = resolved
        LOGGER.debug(
            "Transcript resolve: %s -> %s (role=%s, index=%d)",
            placeholder.id,
            resolved.id,
            role.value,
            index,
        )
        self._publish(PendingResolved(entry=resolved, index=index, replaced_id=placeholder.id))
        return resolved

    def discard_pending(self) -> Entry | None:
        """Remove the pending entry of an abandoned request, if any."""

        index = self._pending_index()
        if index is None:
            return None
        removed = self._entries.pop(index)
        LOGGER.debug("Transcript discard pending: %s", removed.id)
        self._publish(PendingDiscarded(entry_id=removed.id, index=index))
        return removed

    def clear(self) -> None:
        self._entries.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _pending_index(self) -> int | None:
        # The pending entry is normally last; scan backwards.
        for index in range(len(self._entries) - 1, -1, -1):
            if self._entries[index].is_pending:
                return index
        return None

    def _store(self, entry: Entry) -> EntryAppended:
        stored = self._monotonic(entry)
        self._entries.append(stored)
        index = len(self._entries) - 1
        LOGGER.debug("Transcript append: role=%s id=%s index=%d", stored.role.value, stored.id, index)
        return EntryAppended(entry=stored, index=index)

    def _monotonic(self, entry: Entry) -> Entry:
        if self._entries and entry.created_at < self._entries[-1].created_at:
            return replace(entry, created_at=self._entries[-1].created_at)
        return entry

    def _publish(self, event) -> None:
        if self._bus is not None:
            self._bus.publish(event)


__all__ = ["TranscriptStore"]
