"""Application bootstrap and screen routing for the OpenLove chat core.

The presentation layer calls :meth:`ChatNavigator.navigate_to` when the user
moves between the welcome screen and the chat screen. Entering chat starts a
fresh session (new conversation id, new transcript, its own event bus) bound
to the category picked on the welcome screen. Going back ends that session:
its sends are cancelled and its webhook client is closed. Screen changes are
published on the navigator bus; transcript and reply events on
``session.event_bus``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping, Optional

from .ai.client import RemoteReplyClient
from .ai.errors import CategoryLockedError
from .chat.controller import ChatController
from .chat.message_model import Category, Screen
from .chat.suggestions import SuggestionIndex
from .chat.transcript import TranscriptStore
from .events import EventBus, ScreenChanged
from .services.settings import Settings, load_settings
from .utils import logging as logging_utils

_LOGGER = logging.getLogger(__name__)

ClientFactory = Callable[[Settings], RemoteReplyClient]


def configure_logging(settings: Settings | None = None, *, force: bool = False) -> None:
    """Configure logging for a host embedding the chat core."""

    debug = bool(settings and settings.debug_logging)
    level = logging.DEBUG if debug else logging.INFO
    secrets = settings.secrets() if settings is not None else ()
    logging_utils.setup_logging(level, secrets=secrets, force=force)
    _LOGGER.debug("Logging configured (level=%s)", logging.getLevelName(level))


def _default_client_factory(settings: Settings) -> RemoteReplyClient:
    return RemoteReplyClient(settings.client_settings())


class ChatNavigator:
    """Routes between the welcome and chat screens and owns the chat session."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        event_bus: EventBus | None = None,
        client_factory: ClientFactory | None = None,
        suggestion_index: SuggestionIndex | None = None,
    ) -> None:
        self._settings = settings or load_settings()
        self._bus = event_bus or EventBus()
        self._client_factory = client_factory or _default_client_factory
        self._index = suggestion_index or SuggestionIndex()
        self._screen = Screen.WELCOME
        self._session: Optional[ChatController] = None
        self._retired: list[ChatController] = []
        self._closing: set[asyncio.Task[None]] = set()

    @property
    def screen(self) -> Screen:
        return self._screen

    @property
    def session(self) -> Optional[ChatController]:
        """The active chat session, present only on the chat screen."""

        return self._session

    @property
    def event_bus(self) -> EventBus:
        """Bus carrying ``ScreenChanged``; sessions publish on their own."""

        return self._bus

    @property
    def settings(self) -> Settings:
        return self._settings

    def navigate_to(
        self, screen: Screen | str, category: Category | str | None = None
    ) -> Optional[ChatController]:
        """Switch screens; entering chat returns the session controller."""

        target = screen if isinstance(screen, Screen) else Screen(str(screen).strip().lower())
        if target is Screen.WELCOME:
            self._end_session()
            self._screen = Screen.WELCOME
            self._bus.publish(ScreenChanged(screen=Screen.WELCOME))
            return None
        return self._enter_chat(category)

    def select_category(self, category: Category | str) -> ChatController:
        """Pick a category card: enters chat with that category."""

        return self._enter_chat(category)

    def back(self) -> None:
        self.navigate_to(Screen.WELCOME)

    async def close(self) -> None:
        """Release the webhook clients of the current and ended sessions."""

        self._end_session()
        if self._closing:
            await asyncio.gather(*list(self._closing), return_exceptions=True)
        retired, self._retired = self._retired, []
        for controller in retired:
            await controller.aclose()

    def _enter_chat(self, category: Category | str | None) -> ChatController:
        requested = Category.coerce(category)
        if self._session is not None:
            if category is not None and requested is not self._session.category:
                raise CategoryLockedError(
                    f"Chat session already started with category {self._session.category.value!r}"
                )
            return self._session

        session = self._start_session(requested)
        self._session = session
        self._screen = Screen.CHAT
        self._bus.publish(ScreenChanged(screen=Screen.CHAT, category=requested))
        return session

    def _start_session(self, category: Category) -> ChatController:
        # Each session publishes on its own bus; an ended session's late
        # events never reach the next session's observers.
        session_bus: EventBus = EventBus()
        client = self._client_factory(self._settings)
        controller = ChatController(
            client,
            category=category,
            event_bus=session_bus,
            suggestion_index=self._index,
            transcript=TranscriptStore(event_bus=session_bus),
            greeting=self._settings.greeting,
            history_window=self._settings.history_window,
        )
        _LOGGER.info(
            "Chat session started (conversation=%s, category=%s)",
            controller.conversation_id,
            category.value,
        )
        return controller

    def _end_session(self) -> None:
        session, self._session = self._session, None
        if session is None:
            return
        _LOGGER.info("Chat session ended (conversation=%s)", session.conversation_id)
        session.cancel_sends()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop to close on; close() releases it later.
            self._retired.append(session)
            return
        task = loop.create_task(session.aclose())
        self._closing.add(task)
        task.add_done_callback(self._closing.discard)


def create_navigator(
    overrides: Mapping[str, Any] | None = None,
    *,
    event_bus: EventBus | None = None,
    client_factory: ClientFactory | None = None,
) -> ChatNavigator:
    """Load settings, configure logging and return a ready navigator."""

    settings = load_settings(overrides)
    configure_logging(settings)
    return ChatNavigator(settings, event_bus=event_bus, client_factory=client_factory)


__all__ = ["ChatNavigator", "configure_logging", "create_navigator"]
