"""Session aggregate owned by the conversation controller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..audio.transcript import TranscriptAccumulator
from ..core.errors import AssistantError
from ..services.schemas import ChatMessage, ConversationHandle, Role, Voice


class Status(str, Enum):
    """Mode of the microphone control; exactly one is active at a time."""

    IDLE = "idle"
    LISTENING = "listening"
    THINKING = "thinking"
    SPEAKING = "speaking"
    ERROR = "error"


CONTROL_LABELS: dict[Status, str] = {
    Status.IDLE: "Appuyez pour parler",
    Status.LISTENING: "Appuyez pour arrêter",
    Status.THINKING: "Réflexion...",
    Status.SPEAKING: "En train de parler...",
    Status.ERROR: "Réessayer",
}

LISTENING_PLACEHOLDER = "Je vous écoute..."


@dataclass(slots=True)
class Session:
    """Mutable state of the single voice session."""

    locale: str = "fr-FR"
    status: Status = Status.IDLE
    log: list[ChatMessage] = field(default_factory=list)
    transcript: TranscriptAccumulator = field(default_factory=TranscriptAccumulator)
    chat: Optional[ConversationHandle] = None
    voice: Optional[Voice] = None
    error: Optional[AssistantError] = None

    def append(self, role: Role, text: str) -> ChatMessage:
        message = ChatMessage(role=role, text=text)
        self.log.append(message)
        return message


@dataclass(frozen=True, slots=True)
class ConversationView:
    """Read-only snapshot handed to the presentation layer."""

    status: Status
    conversation_log: tuple[ChatMessage, ...]
    transcript_preview: str
    error_message: Optional[str]

    @property
    def control_enabled(self) -> bool:
        return self.status is not Status.THINKING

    @property
    def control_label(self) -> str:
        return CONTROL_LABELS[self.status]

    @property
    def listening_text(self) -> str:
        return self.transcript_preview or LISTENING_PLACEHOLDER

    @property
    def is_listening(self) -> bool:
        return self.status is Status.LISTENING

    @property
    def is_thinking(self) -> bool:
        return self.status is Status.THINKING

    @property
    def is_speaking(self) -> bool:
        return self.status is Status.SPEAKING

    @classmethod
    def of(cls, session: Session) -> "ConversationView":
        return cls(
            status=session.status,
            conversation_log=tuple(session.log),
            transcript_preview=session.transcript.preview,
            error_message=session.error.message if session.error else None,
        )
