from __future__ import annotations

import json

import httpx
import pytest

from biovoice.config.settings import Settings
from biovoice.core.errors import BackendError
from biovoice.services.chat import ChatClient, build_chat_messages


def _client(handler, **overrides) -> ChatClient:
    settings = Settings(
        chat_base_url="http://backend.test/",
        chat_endpoint="v1/chat/completions",
        chat_api_key="secret-key",
        chat_model="bio-model",
        chat_extra_headers={"X-Test": "1"},
        system_prompt="Tu es un professeur de biologie.",
        **overrides,
    )
    return ChatClient(settings, transport=httpx.MockTransport(handler))


def _reply(content: str) -> httpx.Response:
    return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})


@pytest.mark.asyncio
async def test_send_posts_context_and_records_turn():
    captured: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return _reply(f"réponse {len(captured)}")

    client = _client(handler, chat_max_tokens=64)
    handle = client.create_session()
    try:
        assert await client.send(handle, "Bonjour, présente-toi.") == "réponse 1"
        assert await client.send(handle, "Qu'est-ce que l'ADN ?") == "réponse 2"
    finally:
        await client.aclose()

    request = captured[-1]
    assert str(request.url) == "http://backend.test/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer secret-key"
    assert request.headers["X-Test"] == "1"
    payload = json.loads(request.content)
    assert payload["model"] == "bio-model"
    assert payload["max_tokens"] == 64
    assert payload["stream"] is False
    assert payload["messages"] == [
        {"role": "system", "content": "Tu es un professeur de biologie."},
        {"role": "user", "content": "Bonjour, présente-toi."},
        {"role": "assistant", "content": "réponse 1"},
        {"role": "user", "content": "Qu'est-ce que l'ADN ?"},
    ]
    assert len(handle.turns) == 4


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(429, json={"error": "rate limited"}),
        httpx.Response(500, text="internal error"),
        httpx.Response(200, text="<html>pas du json</html>"),
        httpx.Response(200, json={"choices": [{"message": {"content": "   "}}]}),
        httpx.Response(200, json={"choices": []}),
    ],
)
async def test_unusable_responses_raise_backend_error(response: httpx.Response):
    client = _client(lambda request: response)
    handle = client.create_session()
    try:
        with pytest.raises(BackendError):
            await client.send(handle, "ping")
    finally:
        await client.aclose()
    assert handle.turns == []


@pytest.mark.asyncio
async def test_transport_failure_raises_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connexion refusée", request=request)

    client = _client(handler)
    try:
        with pytest.raises(BackendError) as info:
            await client.send(client.create_session(), "ping")
    finally:
        await client.aclose()
    assert isinstance(info.value.__cause__, httpx.ConnectError)
    assert info.value.message == BackendError.user_message


@pytest.mark.asyncio
async def test_timeout_raises_backend_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("trop long", request=request)

    client = _client(handler)
    try:
        with pytest.raises(BackendError):
            await client.send(client.create_session(), "ping")
    finally:
        await client.aclose()


def test_sessions_are_independent():
    client = _client(lambda request: _reply("ok"))
    first = client.create_session()
    second = client.create_session()
    assert first.id != second.id
    assert first.turns is not second.turns


def test_build_chat_messages_normalizes_roles():
    messages = build_chat_messages(
        system="sys",
        history=[{"role": "assistant", "content": "a"}, {"role": "tool", "content": "b"}],
        prompt="c",
    )
    assert [m["role"] for m in messages] == ["system", "assistant", "user", "user"]
