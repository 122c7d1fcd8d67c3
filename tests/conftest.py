"""Shared pytest fixtures."""

from __future__ import annotations

import inspect
import json
from dataclasses import replace
from typing import Any, Callable

import httpx
import pytest

from openlove.ai.client import ClientSettings, RemoteReplyClient
from openlove.events import Event, EventBus

WEBHOOK_URL = "https://hooks.test/webhook/openlove-ai"

Handler = Callable[[httpx.Request], Any]


class RecordingTransport:
    """Wraps a handler in an ``httpx.MockTransport`` and keeps every request."""

    def __init__(self, handler: Handler) -> None:
        self._handler = handler
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    async def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        result = self._handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def payloads(self) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_events(event_bus: EventBus) -> Callable[..., list[Event]]:
    """Subscribe to the given event types and return the shared record list."""

    received: list[Event] = []

    def _record(*event_types: type[Event]) -> list[Event]:
        for event_type in event_types:
            event_bus.subscribe(event_type, received.append)
        return received

    return _record


@pytest.fixture
def client_settings() -> ClientSettings:
    return ClientSettings(
        webhook_url=WEBHOOK_URL,
        request_timeout=5.0,
        user_id="user-test",
    )


@pytest.fixture
def make_client(client_settings: ClientSettings):
    """Build a webhook client whose HTTP traffic is answered by ``handler``."""

    def _make(handler: Handler, **overrides: Any) -> tuple[RemoteReplyClient, RecordingTransport]:
        settings = replace(client_settings, **overrides) if overrides else client_settings
        recorder = RecordingTransport(handler)
        http_client = httpx.AsyncClient(transport=recorder.transport)
        client = RemoteReplyClient(
            settings,
            http_client=http_client,
            conversation_id="openlove_test",
        )
        return client, recorder

    return _make


@pytest.fixture
def json_reply() -> Callable[..., Handler]:
    def _factory(payload: Any, status_code: int = 200) -> Handler:
        def _handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, json=payload)

        return _handler

    return _factory


@pytest.fixture
def text_reply() -> Callable[..., Handler]:
    def _factory(body: str, status_code: int = 200) -> Handler:
        def _handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code, text=body)

        return _handler

    return _factory
