"""Async client for the relationship-advice webhook."""

from __future__ import annotations

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Mapping

import httpx

from ..chat.message_model import Category, Entry
from .errors import FailureKind, ReplyFailure
from .reply_parsing import MalformedBodyError, decode_body, extract_reply_text, normalize_reply_text

LOGGER = logging.getLogger(__name__)
_BASE_HEADERS: Mapping[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_conversation_id() -> str:
    return f"openlove_{uuid.uuid4().hex}"


@dataclass(slots=True)
class ClientSettings:
    """Subset of settings required to configure the webhook client."""

    webhook_url: str
    request_timeout: float = 30.0
    user_id: str = "anonymous"
    history_window: int = 5
    default_headers: Mapping[str, str] | None = None
    debug_logging: bool = False


@dataclass(slots=True, frozen=True)
class ReplyResult:
    """Outcome of one webhook call: the text to show and why it fell back, if it did."""

    content: str
    failure: ReplyFailure | None = None

    @property
    def was_fallback(self) -> bool:
        return self.failure is not None

    @property
    def kind(self) -> FailureKind | None:
        return self.failure.kind if self.failure is not None else None


class RemoteReplyClient:
    """Sends one chat message to the advice webhook and normalizes the reply.

    :meth:`send` never raises for timeouts, transport errors, HTTP error
    statuses or unusable bodies; those become a :class:`ReplyResult` carrying
    a fallback message and the classified :class:`ReplyFailure`.
    """

    def __init__(
        self,
        settings: ClientSettings,
        *,
        http_client: httpx.AsyncClient | None = None,
        conversation_id: str | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._settings = settings
        self._owns_client = http_client is None
        self._client = http_client or self._build_client(settings)
        self._conversation_id = conversation_id or new_conversation_id()
        self._clock = clock

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def conversation_id(self) -> str:
        return self._conversation_id

    async def send(
        self,
        message: str,
        category: Category | str | None,
        recent_history: Iterable[Entry] = (),
    ) -> ReplyResult:
        """Send ``message`` with its context and return the reply to display."""

        payload = self.build_payload(message, category, recent_history)
        LOGGER.debug(
            "Sending message to webhook (conversation=%s, category=%s, history=%d)",
            self._conversation_id,
            payload["category"],
            len(payload["context"]["previous_messages"]),
        )
        if self._settings.debug_logging:
            self._log_payload(payload)

        try:
            text = await self._request_reply(payload)
        except ReplyFailure as failure:
            LOGGER.warning("Webhook reply failed: %s", failure)
            return ReplyResult(content=failure.fallback_text(), failure=failure)
        LOGGER.debug("Webhook reply received (%d chars)", len(text))
        return ReplyResult(content=text)

    def build_payload(
        self,
        message: str,
        category: Category | str | None,
        recent_history: Iterable[Entry] = (),
    ) -> Dict[str, Any]:
        """Return the JSON body sent to the webhook."""

        selected = Category.coerce(category)
        window = max(0, int(self._settings.history_window))
        history = [entry for entry in recent_history if not entry.is_pending]
        history = history[-window:] if window else []
        return {
            "message": message,
            "category": selected.value,
            "conversation_id": self._conversation_id,
            "user_id": self._settings.user_id,
            "timestamp": self._clock().isoformat(),
            "context": {
                "previous_messages": [entry.to_dict() for entry in history],
                "session_data": {
                    "selected_category": selected.value,
                    "screen": "chat",
                },
            },
        }

    async def _request_reply(self, payload: Mapping[str, Any]) -> str:
        timeout = self._settings.request_timeout
        try:
            response = await asyncio.wait_for(
                self._client.post(
                    self._settings.webhook_url,
                    json=payload,
                    headers=self._headers(),
                ),
                timeout=timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise ReplyFailure(
                FailureKind.TIMEOUT, f"No reply within {timeout:g} seconds"
            ) from exc
        except httpx.HTTPError as exc:
            raise ReplyFailure(FailureKind.TRANSPORT, f"{type(exc).__name__}: {exc}") from exc

        if not response.is_success:
            raise ReplyFailure(
                FailureKind.TRANSPORT,
                f"Webhook answered {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        body = response.text
        try:
            decoded = decode_body(body)
        except MalformedBodyError as exc:
            raise ReplyFailure(FailureKind.MALFORMED, str(exc)) from exc

        raw = extract_reply_text(decoded)
        text = normalize_reply_text(raw) if raw is not None else ""
        if not text:
            raise ReplyFailure(FailureKind.EMPTY, "Webhook reply carried no text")
        return text

    def _headers(self) -> Dict[str, str]:
        headers = dict(_BASE_HEADERS)
        if self._settings.default_headers:
            headers.update(self._settings.default_headers)
        return headers

    def _build_client(self, settings: ClientSettings) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(settings.request_timeout))

    def _log_payload(self, payload: Mapping[str, Any]) -> None:
        try:
            serialized = json.dumps(payload, ensure_ascii=False, indent=2)
        except (TypeError, ValueError):
            LOGGER.debug("Webhook payload (unserializable): %s", payload)
        else:
            LOGGER.debug("Webhook payload:\n%s", serialized)

    async def aclose(self) -> None:
        """Close the HTTP client if this instance created it."""

        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RemoteReplyClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()


__all__ = ["ClientSettings", "RemoteReplyClient", "ReplyResult", "new_conversation_id"]
