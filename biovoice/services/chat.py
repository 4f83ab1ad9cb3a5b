"""HTTP gateway to the conversational backend (OpenAI-compatible chat API)."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Iterable, Optional

import httpx

from ..config.settings import Settings
from ..core.errors import BackendError
from .schemas import ConversationHandle


logger = logging.getLogger(__name__)


def build_chat_messages(
    *,
    system: str | None = None,
    history: Iterable[dict[str, Any]] | None = None,
    prompt: str,
) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system:
        messages.append({"role": "system", "content": system})
    for turn in history or ():
        role = turn.get("role")
        role_norm = role if role in {"user", "assistant"} else "user"
        messages.append({"role": role_norm, "content": str(turn.get("content", ""))})
    messages.append({"role": "user", "content": prompt})
    return messages


def _extract_text(payload: Any) -> str:
    if not isinstance(payload, dict):
        return ""
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    choice = choices[0]
    message = choice.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not content:
        content = choice.get("text") or ""
    return content if isinstance(content, str) else str(content)


class ChatClient:
    """Async client for the chat backend.

    A :class:`ConversationHandle` keeps the system prompt and every accepted
    turn; each call resends the whole context. A turn is committed to the
    handle only when the backend returned usable text, so a failed call
    leaves the context untouched.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        endpoint = settings.chat_endpoint or "/v1/chat/completions"
        self.endpoint = endpoint if endpoint.startswith("/") else f"/{endpoint}"
        headers = {"Content-Type": "application/json"}
        headers.update(settings.chat_extra_headers or {})
        if settings.chat_api_key:
            headers["Authorization"] = f"Bearer {settings.chat_api_key}"
        timeout = httpx.Timeout(
            connect=10.0,
            read=settings.reply_timeout_seconds,
            write=10.0,
            pool=None,
        )
        self._client = httpx.AsyncClient(
            base_url=settings.chat_base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def create_session(self) -> ConversationHandle:
        """Open a fresh conversation context."""
        return ConversationHandle(id=uuid.uuid4().hex[:12], system_prompt=self.settings.system_prompt)

    async def send(self, handle: ConversationHandle, text: str) -> str:
        """Send ``text`` with the accumulated context and return the reply."""
        payload: dict[str, Any] = {
            "model": self.settings.chat_model,
            "messages": build_chat_messages(
                system=handle.system_prompt,
                history=handle.turns,
                prompt=text,
            ),
            "temperature": self.settings.chat_temperature,
            "max_tokens": self.settings.chat_max_tokens,
            "stream": False,
        }
        try:
            response = await self._client.post(self.endpoint, json=payload)
        except httpx.TimeoutException as exc:
            raise BackendError("Timeout lors de la réponse du backend.") from exc
        except httpx.RequestError as exc:
            raise BackendError(f"Impossible de contacter le backend: {exc}") from exc

        if response.status_code == 429:
            raise BackendError("Limite de requêtes atteinte (429).")
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            detail = response.text.strip()[:200] or response.reason_phrase
            raise BackendError(f"Le backend a répondu {response.status_code}: {detail}") from exc

        try:
            data = response.json()
        except ValueError as exc:
            raise BackendError(f"Réponse non-JSON du backend: {response.text[:200]}") from exc

        answer = _extract_text(data).strip()
        if not answer:
            raise BackendError("Réponse vide du backend.")

        handle.turns.append({"role": "user", "content": text})
        handle.turns.append({"role": "assistant", "content": answer})
        logger.info("Réponse reçue (%d caractères, session %s).", len(answer), handle.id)
        return answer

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
