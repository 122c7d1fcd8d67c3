"""Event bus the presentation layer uses to observe the chat core.

The core never calls into rendering code. The transcript store, the chat
controller and the navigator publish small dataclass events here and the
external front-end subscribes to the ones it renders.
"""

from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    TypeVar,
    TYPE_CHECKING,
)
from weakref import WeakMethod

if TYPE_CHECKING:  # pragma: no cover - imports for type checking only
    from typing import DefaultDict

    from .ai.errors import FailureKind
    from .chat.message_model import Category, Entry, Screen, Suggestion

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Event")

Handler = Callable[[E], None]


@dataclass(slots=True)
class Event:
    """Base class for all events published by the chat core."""

    pass


# Published on every keystroke; not worth a debug line each.
_QUIET_EVENT_TYPES: set[type] = set()


# =============================================================================
# Transcript events
# =============================================================================


@dataclass(slots=True)
class EntryAppended(Event):
    """An entry was added to the end of the transcript.

    Attributes:
        entry: The appended entry.
        index: Its position in conversation order.
    """

    entry: Entry
    index: int


@dataclass(slots=True)
class PendingResolved(Event):
    """The pending placeholder was replaced in place by a terminal entry.

    Attributes:
        entry: The terminal entry now occupying the slot.
        index: Position of the slot.
        replaced_id: Id of the pending entry that was replaced.
    """

    entry: Entry
    index: int
    replaced_id: str


@dataclass(slots=True)
class PendingDiscarded(Event):
    """A pending placeholder was removed because its request was abandoned."""

    entry_id: str
    index: int


# =============================================================================
# Composer events
# =============================================================================


@dataclass(slots=True)
class InputChanged(Event):
    """The composer text changed."""

    text: str


@dataclass(slots=True)
class SuggestionChanged(Event):
    """The inline completion for the composer changed (``None`` hides it)."""

    suggestion: Suggestion | None


_QUIET_EVENT_TYPES.update({InputChanged, SuggestionChanged})


# =============================================================================
# Reply events
# =============================================================================


@dataclass(slots=True)
class ReplyStarted(Event):
    """A message was sent to the advice webhook and is awaiting a reply.

    Attributes:
        request_id: Identifier of the send cycle.
        message: The user text that was sent.
    """

    request_id: str
    message: str


@dataclass(slots=True)
class ReplyCompleted(Event):
    """A send cycle finished and its pending entry was resolved.

    Attributes:
        request_id: Identifier of the send cycle.
        content: The text placed in the transcript.
        was_fallback: True when ``content`` is a canned failure notice.
        failure_kind: Why the reply fell back, if it did.
        status_code: Transport status for transport failures.
    """

    request_id: str
    content: str
    was_fallback: bool = False
    failure_kind: FailureKind | None = None
    status_code: int | None = None


# =============================================================================
# Navigation events
# =============================================================================


@dataclass(slots=True)
class ScreenChanged(Event):
    """The navigator switched screens."""

    screen: Screen
    category: Category | None = None


@dataclass(slots=True, eq=False)
class _Subscription:
    """One registration: a weak reference for bound methods, else the callable."""

    target: Any
    weak: bool

    @classmethod
    def wrap(cls, handler: Handler) -> _Subscription:
        if inspect.ismethod(handler):
            return cls(WeakMethod(handler), weak=True)
        return cls(handler, weak=False)

    def handler(self) -> Handler | None:
        return self.target() if self.weak else self.target

    def is_for(self, handler: Handler) -> bool:
        live = self.handler()
        return live is not None and live == handler


class EventBus(Generic[E]):
    """Synchronous publish/subscribe hub keyed by exact event type.

    Bound-method handlers are held weakly, so a view that goes away stops
    receiving transcript updates without unsubscribing. Handlers run in
    registration order on the caller's thread; one that raises is logged and
    does not stop delivery to the rest.
    """

    __slots__ = ("_subscriptions",)

    def __init__(self) -> None:
        self._subscriptions: DefaultDict[type[Event], list[_Subscription]] = defaultdict(list)

    def subscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        self._subscriptions[event_type].append(_Subscription.wrap(handler))
        logger.debug("%s subscribed to %s", _describe(handler), event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Handler[E]) -> None:
        """Drop the earliest registration of ``handler`` for ``event_type``."""
        registered = self._subscriptions.get(event_type, [])
        match = next((sub for sub in registered if sub.is_for(handler)), None)
        if match is None:
            return
        registered.remove(match)
        logger.debug("%s unsubscribed from %s", _describe(handler), event_type.__name__)

    def publish(self, event: E) -> None:
        event_type = type(event)
        registered = self._subscriptions.get(event_type)
        quiet = event_type in _QUIET_EVENT_TYPES
        if not quiet:
            logger.debug("Publishing %s (%d handler(s))", event_type.__name__, len(registered or ()))
        if not registered:
            return

        # Iterate a copy: handlers may (un)subscribe while being called.
        for subscription in tuple(registered):
            handler = subscription.handler()
            if handler is None:
                if subscription in registered:
                    registered.remove(subscription)
                continue
            try:
                handler(event)
            except Exception:
                logger.exception("%s failed while handling %s", _describe(handler), event_type.__name__)

    def clear(self) -> None:
        self._subscriptions.clear()

    def handler_count(self, event_type: type[E] | None = None) -> int:
        """Registrations for ``event_type``, or across all types when omitted."""
        if event_type is None:
            return sum(len(registered) for registered in self._subscriptions.values())
        return len(self._subscriptions.get(event_type, ()))


def _describe(handler: Any) -> str:
    if inspect.ismethod(handler):
        return f"{type(handler.__self__).__name__}.{handler.__func__.__name__}"
    return getattr(handler, "__qualname__", None) or repr(handler)


__all__ = [
    "Event",
    "EventBus",
    "Handler",
    "EntryAppended",
    "PendingResolved",
    "PendingDiscarded",
    "InputChanged",
    "SuggestionChanged",
    "ReplyStarted",
    "ReplyCompleted",
    "ScreenChanged",
]
