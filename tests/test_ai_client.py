"""Tests for the advice webhook client."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone

import httpx
import pytest

from openlove.ai.client import ClientSettings, RemoteReplyClient, ReplyResult
from openlove.ai.errors import (
    AUTH_NOTICE,
    EMPTY_RESPONSE_NOTICE,
    GENERIC_NOTICE,
    NOT_FOUND_NOTICE,
    TIMEOUT_NOTICE,
    UNAVAILABLE_NOTICE,
    FailureKind,
)
from openlove.chat.message_model import Category, Entry


@pytest.mark.asyncio
async def test_send_returns_extracted_reply(make_client, json_reply) -> None:
    client, recorder = make_client(json_reply({"response": "Watch their actions."}))

    result = await client.send("How can I tell", Category.DATING, [])

    assert result == ReplyResult(content="Watch their actions.")
    assert result.was_fallback is False
    assert result.kind is None
    assert len(recorder.requests) == 1
    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == client.settings.webhook_url
    assert request.headers["content-type"] == "application/json"
    assert request.headers["accept"] == "application/json"


@pytest.mark.asyncio
async def test_payload_carries_message_context_and_session(make_client, json_reply) -> None:
    client, recorder = make_client(json_reply({"output": "ok"}))
    history = [Entry.user(f"m{i}") for i in range(7)]

    await client.send("Hello", "romance", history)

    payload = recorder.payloads()[0]
    assert payload["message"] == "Hello"
    assert payload["category"] == "romance"
    assert payload["conversation_id"] == "openlove_test"
    assert payload["user_id"] == "user-test"
    assert datetime.fromisoformat(payload["timestamp"]).tzinfo is not None
    previous = payload["context"]["previous_messages"]
    assert [item["content"] for item in previous] == ["m2", "m3", "m4", "m5", "m6"]
    assert previous[0]["type"] == "user"
    assert payload["context"]["session_data"] == {"selected_category": "romance", "screen": "chat"}


def test_build_payload_uses_clock_and_skips_pending(client_settings: ClientSettings) -> None:
    fixed = datetime(2024, 2, 14, 12, 0, tzinfo=timezone.utc)
    client = RemoteReplyClient(
        client_settings,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200))),
        clock=lambda: fixed,
    )

    payload = client.build_payload(
        "Hi",
        None,
        [Entry.assistant("Greeting"), Entry.pending()],
    )

    assert payload["timestamp"] == "2024-02-14T12:00:00+00:00"
    assert payload["category"] == "none"
    assert payload["conversation_id"].startswith("openlove_")
    assert [item["type"] for item in payload["context"]["previous_messages"]] == ["ai"]


def test_conversation_ids_are_unique_per_client(client_settings: ClientSettings) -> None:
    first = RemoteReplyClient(client_settings)
    second = RemoteReplyClient(client_settings)

    assert first.conversation_id != second.conversation_id


@pytest.mark.asyncio
async def test_deployment_headers_are_sent(make_client, json_reply) -> None:
    client, recorder = make_client(
        json_reply({"output": "ok"}),
        default_headers={"Authorization": "Bearer token-123", "X-API-Key": "key-456"},
    )

    await client.send("Hello", Category.NONE)

    headers = recorder.requests[0].headers
    assert headers["authorization"] == "Bearer token-123"
    assert headers["x-api-key"] == "key-456"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("payload", "expected"),
    [
        ({"output": "**bold** text"}, "**bold** text"),
        ("plain string", "plain string"),
        ([{"message": "hi"}], "hi"),
        ({"data": {"answer": "nested"}}, "nested"),
        ({"reply": '"Be kind.\\nListen more."'}, "Be kind.\nListen more."),
    ],
)
async def test_reply_shapes_are_normalized(make_client, json_reply, payload, expected) -> None:
    client, _ = make_client(json_reply(payload))

    result = await client.send("Hello", Category.NONE)

    assert result.content == expected
    assert result.was_fallback is False


@pytest.mark.asyncio
async def test_plain_text_body_is_used_directly(make_client, text_reply) -> None:
    client, _ = make_client(text_reply("Take it slow."))

    result = await client.send("Hello", Category.NONE)

    assert result.content == "Take it slow."


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["", "   ", "{}", "[]", '{"output": ""}'])
async def test_empty_success_yields_empty_notice(make_client, text_reply, body: str) -> None:
    client, _ = make_client(text_reply(body))

    result = await client.send("Hello", Category.NONE)

    assert result.content == EMPTY_RESPONSE_NOTICE
    assert result.kind is FailureKind.EMPTY
    assert result.was_fallback is True


@pytest.mark.asyncio
async def test_malformed_json_yields_generic_notice(make_client, text_reply) -> None:
    client, _ = make_client(text_reply('{"output": "unterminated'))

    result = await client.send("Hello", Category.NONE)

    assert result.kind is FailureKind.MALFORMED
    assert result.content == GENERIC_NOTICE


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "notice"),
    [
        (404, NOT_FOUND_NOTICE),
        (401, AUTH_NOTICE),
        (403, AUTH_NOTICE),
        (500, UNAVAILABLE_NOTICE),
        (503, UNAVAILABLE_NOTICE),
        (429, GENERIC_NOTICE),
        (400, GENERIC_NOTICE),
    ],
)
async def test_transport_status_maps_to_fallback(make_client, json_reply, status: int, notice: str) -> None:
    client, _ = make_client(json_reply({"output": "ignored"}, status_code=status))

    result = await client.send("Hello", Category.NONE)

    assert result.content == notice
    assert result.kind is FailureKind.TRANSPORT
    assert result.failure is not None
    assert result.failure.status_code == status


@pytest.mark.asyncio
async def test_server_error_guidance_differs_from_timeout(make_client, json_reply) -> None:
    client, _ = make_client(json_reply({}, status_code=500))

    result = await client.send("Hello", Category.NONE)

    assert result.content
    assert result.content != TIMEOUT_NOTICE


@pytest.mark.asyncio
async def test_slow_webhook_times_out(make_client) -> None:
    async def slow(request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(1)
        return httpx.Response(200, json={"output": "too late"})

    client, _ = make_client(slow, request_timeout=0.01)

    result = await client.send("Hello", Category.NONE)

    assert result.kind is FailureKind.TIMEOUT
    assert result.content == TIMEOUT_NOTICE


@pytest.mark.asyncio
async def test_transport_timeout_exception_is_a_timeout(make_client) -> None:
    def raise_timeout(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    client, _ = make_client(raise_timeout)

    result = await client.send("Hello", Category.NONE)

    assert result.kind is FailureKind.TIMEOUT


@pytest.mark.asyncio
async def test_connection_error_is_transport_without_status(make_client) -> None:
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = make_client(refuse)

    result = await client.send("Hello", Category.NONE)

    assert result.kind is FailureKind.TRANSPORT
    assert result.failure is not None
    assert result.failure.status_code is None
    assert result.content == GENERIC_NOTICE


@pytest.mark.asyncio
async def test_failures_are_logged(make_client, json_reply, caplog: pytest.LogCaptureFixture) -> None:
    client, _ = make_client(json_reply({}, status_code=502))

    with caplog.at_level(logging.WARNING, logger="openlove.ai.client"):
        await client.send("Hello", Category.NONE)

    assert any("502" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_debug_logging_dumps_payload(make_client, json_reply, caplog: pytest.LogCaptureFixture) -> None:
    client, _ = make_client(json_reply({"output": "ok"}), debug_logging=True)

    with caplog.at_level(logging.DEBUG, logger="openlove.ai.client"):
        await client.send("Secret crush", Category.NONE)

    assert any("Webhook payload" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_aclose_only_closes_owned_client(client_settings: ClientSettings) -> None:
    shared = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    borrowed = RemoteReplyClient(client_settings, http_client=shared)

    await borrowed.aclose()
    assert shared.is_closed is False

    async with RemoteReplyClient(client_settings) as owned:
        inner = owned._client
    assert inner.is_closed is True
    await shared.aclose()
