"""Per-session chat controller.

The controller owns everything the chat screen used to keep in component
state: the composer text, the live suggestion, the transcript, the scroll
follow flag and the requests in flight. The presentation layer forwards its
input events here and renders what the controller (and its event bus)
reports back.

Sends are serialized. A message submitted while another one is still
awaiting its reply is accepted and queued; its user entry and pending
placeholder are appended once the earlier cycle has resolved, so the
transcript never holds more than one pending entry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from ..ai.client import RemoteReplyClient, ReplyResult
from ..ai.errors import ReplyFailure
from ..events import (
    EventBus,
    InputChanged,
    ReplyCompleted,
    ReplyStarted,
    SuggestionChanged,
)
from ..models.reply_models import ChatState, ReplyRequest
from .message_model import Category, Suggestion
from .suggestions import SuggestionIndex
from .transcript import TranscriptStore

LOGGER = logging.getLogger(__name__)


class ChatController:
    """Drives one chat session from composer input to resolved replies."""

    def __init__(
        self,
        client: RemoteReplyClient,
        *,
        category: Category | str | None = Category.NONE,
        event_bus: EventBus | None = None,
        suggestion_index: SuggestionIndex | None = None,
        transcript: TranscriptStore | None = None,
        greeting: str | None = None,
        history_window: int | None = None,
    ) -> None:
        self._client = client
        self._category = Category.coerce(category)
        self._bus = event_bus or EventBus()
        self._index = suggestion_index or SuggestionIndex()
        self._transcript = transcript or TranscriptStore(event_bus=self._bus)
        if history_window is None:
            history_window = client.settings.history_window
        self._history_window = max(0, int(history_window))

        self._input_text = ""
        self._suggestion: Optional[Suggestion] = None
        self._follow_latest = True
        self._last_failure: Optional[ReplyFailure] = None

        self._send_lock = asyncio.Lock()
        self._requests: List[ReplyRequest] = []
        self._active: Optional[ReplyRequest] = None
        self._queued = 0
        self._tasks: set[asyncio.Task[Optional[ReplyRequest]]] = set()

        if greeting and greeting.strip():
            self._transcript.append_assistant(greeting)

    # ------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------
    @property
    def category(self) -> Category:
        return self._category

    @property
    def conversation_id(self) -> str:
        return self._client.conversation_id

    @property
    def event_bus(self) -> EventBus:
        return self._bus

    @property
    def transcript(self) -> TranscriptStore:
        return self._transcript

    @property
    def state(self) -> ChatState:
        """Status of the cycle owning the pending slot, or ``IDLE``."""

        if self._active is not None:
            return self._active.status
        return ChatState.IDLE

    @property
    def is_awaiting_reply(self) -> bool:
        return self._active is not None and self._active.is_awaiting

    @property
    def active_request(self) -> Optional[ReplyRequest]:
        return self._active

    @property
    def requests(self) -> tuple[ReplyRequest, ...]:
        return tuple(self._requests)

    @property
    def queued_count(self) -> int:
        """Submissions waiting for the current cycle to resolve."""

        return self._queued

    @property
    def last_failure(self) -> Optional[ReplyFailure]:
        """Most recent failure, for an optional diagnostic banner."""

        return self._last_failure

    def dismiss_error(self) -> None:
        self._last_failure = None

    # ------------------------------------------------------------------
    # Composer + suggestions
    # ------------------------------------------------------------------
    @property
    def input_text(self) -> str:
        return self._input_text

    @property
    def suggestion(self) -> Optional[Suggestion]:
        return self._suggestion

    def on_input_change(self, text: str) -> Optional[Suggestion]:
        """Record the composer text and recompute the inline suggestion."""

        self._input_text = text or ""
        self._bus.publish(InputChanged(text=self._input_text))
        self._set_suggestion(self._index.suggest(self._input_text))
        return self._suggestion

    def accept_suggestion(self) -> bool:
        """Replace the composer text with the active suggestion, if any."""

        suggestion = self._suggestion
        if suggestion is None:
            return False
        self._input_text = suggestion.full
        self._bus.publish(InputChanged(text=self._input_text))
        self._set_suggestion(None)
        return True

    # ------------------------------------------------------------------
    # Scroll position
    # ------------------------------------------------------------------
    @property
    def follow_latest(self) -> bool:
        return self._follow_latest

    def set_follow_latest(self, follow: bool) -> None:
        """Record whether the view is pinned to the newest entry."""

        self._follow_latest = bool(follow)

    @property
    def scroll_target(self) -> Optional[str]:
        """Id of the entry the view should scroll to, when following."""

        if not self._follow_latest:
            return None
        entries = self._transcript.snapshot()
        return entries[-1].id if entries else None

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------
    async def submit(self, text: Optional[str] = None) -> Optional[ReplyRequest]:
        """Send ``text`` (default: the composer text) and wait for its reply.

        Blank or whitespace-only text is ignored and returns ``None``.
        """

        request = self._prepare(text)
        if request is None:
            return None
        return await self._dispatch(request)

    def on_submit(self, text: Optional[str] = None) -> Optional[asyncio.Task[Optional[ReplyRequest]]]:
        """Schedule a send on the running loop without waiting for the reply."""

        request = self._prepare(text)
        if request is None:
            return None
        task = asyncio.get_running_loop().create_task(self._dispatch(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait for every scheduled send to finish."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def cancel_sends(self) -> None:
        """Cancel every scheduled send; their placeholders are discarded."""

        for task in list(self._tasks):
            task.cancel()

    async def aclose(self) -> None:
        """Cancel scheduled sends and release the webhook client."""

        self.cancel_sends()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self._client.aclose()

    def _prepare(self, text: Optional[str]) -> Optional[ReplyRequest]:
        raw = self._input_text if text is None else text
        message = (raw or "").strip()
        if not message:
            LOGGER.debug("Ignoring blank submission")
            return None
        request = ReplyRequest(message=message)
        self._requests.append(request)
        self._input_text = ""
        self._bus.publish(InputChanged(text=""))
        self._set_suggestion(None)
        self._follow_latest = True
        return request

    async def _dispatch(self, request: ReplyRequest) -> ReplyRequest:
        self._queued += 1
        try:
            await self._send_lock.acquire()
        except asyncio.CancelledError:
            request.mark_abandoned()
            raise
        finally:
            self._queued -= 1
        try:
            return await self._run_cycle(request)
        finally:
            self._send_lock.release()

    async def _run_cycle(self, request: ReplyRequest) -> ReplyRequest:
        self._active = request
        try:
            history = self._transcript.recent(self._history_window)
            user_entry, pending = self._transcript.append_exchange(request.message)
            request.mark_sending(user_entry.id, pending.id)
            self._bus.publish(ReplyStarted(request_id=request.request_id, message=request.message))

            request.mark_awaiting()
            try:
                result = await self._client.send(request.message, self._category, history)
            except asyncio.CancelledError:
                LOGGER.debug("Send cycle %s cancelled; discarding placeholder", request.request_id)
                self._abandon(request)
                raise
            except Exception:
                LOGGER.exception("Send cycle %s failed unexpectedly", request.request_id)
                self._abandon(request)
                raise

            self._transcript.resolve_pending(result.content)
            request.mark_resolved(result)
            self._record_outcome(request, result)
            return request
        finally:
            self._active = None

    def _abandon(self, request: ReplyRequest) -> None:
        self._transcript.discard_pending()
        request.mark_abandoned()

    def _record_outcome(self, request: ReplyRequest, result: ReplyResult) -> None:
        failure = result.failure
        if failure is not None:
            self._last_failure = failure
        else:
            self._last_failure = None
        LOGGER.debug(
            "Send cycle %s finished: status=%s",
            request.request_id,
            request.status.value,
        )
        self._bus.publish(
            ReplyCompleted(
                request_id=request.request_id,
                content=result.content,
                was_fallback=result.was_fallback,
                failure_kind=failure.kind if failure is not None else None,
                status_code=failure.status_code if failure is not None else None,
            )
        )

    def _set_suggestion(self, suggestion: Optional[Suggestion]) -> None:
        if suggestion == self._suggestion:
            return
        self._suggestion = suggestion
        self._bus.publish(SuggestionChanged(suggestion=suggestion))


__all__ = ["ChatController"]
