"""ASR utilities powered by faster-whisper."""

from __future__ import annotations

import threading
from dataclasses import dataclass

import numpy as np
from faster_whisper import WhisperModel


@dataclass(slots=True)
class WhisperConfig:
    """Configuration for the faster-whisper engine."""

    model: str = "small"
    device: str = "cpu"
    compute_type: str = "int8"
    language: str = "fr"


class FasterWhisperEngine:
    """Thin wrapper around WhisperModel, loaded on first use."""

    def __init__(self, config: WhisperConfig) -> None:
        self.config = config
        self._model: WhisperModel | None = None
        self._lock = threading.Lock()

    def transcribe(self, pcm: bytes) -> str:
        """Transcribe 16 kHz mono int16 PCM into text."""
        if not pcm:
            return ""
        audio = np.frombuffer(pcm, dtype=np.int16).astype(np.float32) / 32768.0
        segments, _ = self._ensure_model().transcribe(audio, language=self.config.language)
        return " ".join(segment.text.strip() for segment in segments).strip()

    def _ensure_model(self) -> WhisperModel:
        with self._lock:
            if self._model is None:
                self._model = WhisperModel(
                    self.config.model,
                    device=self.config.device,
                    compute_type=self.config.compute_type,
                )
            return self._model
