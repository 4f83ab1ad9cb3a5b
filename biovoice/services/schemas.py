"""Data schemas exchanged between the controller and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional


class Role(str, Enum):
    """Author of a conversation message."""

    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True, slots=True)
class ChatMessage:
    """Conversation message, immutable once appended to the log."""

    role: Role
    text: str


@dataclass(frozen=True, slots=True)
class RecognitionAlternative:
    """One fragment reported by the speech-capture engine."""

    transcript: str
    is_final: bool = False


@dataclass(frozen=True, slots=True)
class RecognitionResult:
    """Incremental result event: fragments from ``result_index`` onward changed."""

    result_index: int
    results: tuple[RecognitionAlternative, ...]


@dataclass(frozen=True, slots=True)
class RecognitionError:
    """Error event raised by the speech-capture engine."""

    code: str
    detail: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Voice:
    """Synthesis voice advertised by the platform."""

    name: str
    locale: str
    default: bool = False
    model_path: Optional[Path] = None
    config_path: Optional[Path] = None


@dataclass(slots=True)
class SpeechOptions:
    """Per-utterance synthesis parameters."""

    locale: str
    rate: float = 1.0
    pitch: float = 1.0
    voice: Optional[Voice] = None


@dataclass(slots=True)
class ConversationHandle:
    """Opaque backend context: system prompt plus the ordered prior turns."""

    id: str
    system_prompt: str
    turns: list[dict[str, Any]] = field(default_factory=list)
