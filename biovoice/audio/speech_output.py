"""Speech output contract and text preparation for synthesis."""

from __future__ import annotations

import asyncio
import re
from abc import ABC, abstractmethod

from ..services.schemas import SpeechOptions


_EMPHASIS = re.compile(r"[*_]+")
_WHITESPACE = re.compile(r"\s+")


def sanitize_for_speech(text: str) -> str:
    """Drop markdown emphasis markers so they are not read aloud."""
    cleaned = _EMPHASIS.sub("", text)
    return _WHITESPACE.sub(" ", cleaned).strip()


class SpeechOutput(ABC):
    """Speaks one utterance at a time.

    :meth:`speak` returns a future that completes when the utterance has
    been heard, fails with :class:`~biovoice.core.errors.SynthesisError`,
    or is cancelled (and never completes) when :meth:`cancel` or a newer
    :meth:`speak` interrupts it.
    """

    @abstractmethod
    def speak(self, text: str, options: SpeechOptions) -> asyncio.Future[None]: ...

    @abstractmethod
    def cancel(self) -> None: ...
