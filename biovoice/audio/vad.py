"""Voice activity detection and utterance segmentation."""

from __future__ import annotations

from dataclasses import dataclass

import webrtcvad


_VALID_SAMPLE_RATES = (8000, 16_000, 32_000, 48_000)
_VALID_FRAME_DURATIONS_MS = (10, 20, 30)
_BYTES_PER_SAMPLE = 2


@dataclass(slots=True)
class VADConfig:
    """WebRTC VAD configuration."""

    aggressiveness: int = 2  # 0 (sensitive) to 3 (strict)


class VoiceActivityDetector:
    """Wrapper around the WebRTC VAD implementation."""

    def __init__(self, config: VADConfig | None = None) -> None:
        self.config = config or VADConfig()
        self.config.aggressiveness = max(0, min(3, self.config.aggressiveness))
        self._vad = webrtcvad.Vad(self.config.aggressiveness)

    def is_speech(self, frame: bytes, sample_rate: int) -> bool:
        """Return True when the frame contains speech."""
        return self._vad.is_speech(normalize_frame(frame, sample_rate), sample_rate)


def normalize_frame(frame: bytes, sample_rate: int) -> bytes:
    """Pad or trim a frame to the nearest length WebRTC VAD accepts."""
    if not frame or sample_rate not in _VALID_SAMPLE_RATES:
        return frame
    frame_samples = len(frame) // _BYTES_PER_SAMPLE
    if frame_samples == 0:
        return frame
    expected = [sample_rate * duration // 1000 for duration in _VALID_FRAME_DURATIONS_MS]
    target_bytes = min(expected, key=lambda samples: abs(samples - frame_samples)) * _BYTES_PER_SAMPLE
    if len(frame) >= target_bytes:
        return frame[:target_bytes]
    return frame + bytes(target_bytes - len(frame))


class UtteranceSegmenter:
    """Cut a frame stream into utterances closed by trailing silence.

    Leading silence is dropped; silence inside an utterance is kept so the
    recognizer hears natural pauses.
    """

    def __init__(
        self,
        detector: VoiceActivityDetector,
        *,
        sample_rate: int = 16_000,
        frame_duration_ms: int = 20,
        silence_duration_ms: int = 800,
    ) -> None:
        self.detector = detector
        self.sample_rate = sample_rate
        self.frame_duration_ms = frame_duration_ms
        self.silence_duration_ms = silence_duration_ms
        self._buffer = bytearray()
        self._silence_ms = 0
        self._speech_ms = 0

    @property
    def pending(self) -> bytes:
        return bytes(self._buffer)

    @property
    def speech_ms(self) -> int:
        """Milliseconds of audio in the open utterance."""
        return self._speech_ms

    def push(self, frame: bytes) -> bytes | None:
        """Feed one frame; return a finished utterance when silence closes it."""
        if self.detector.is_speech(frame, self.sample_rate):
            self._buffer += frame
            self._silence_ms = 0
            self._speech_ms += self.frame_duration_ms
            return None
        if not self._buffer:
            return None
        self._buffer += frame
        self._silence_ms += self.frame_duration_ms
        self._speech_ms += self.frame_duration_ms
        if self._silence_ms >= self.silence_duration_ms:
            return self.flush()
        return None

    def flush(self) -> bytes | None:
        """Close the open utterance, if any."""
        if not self._buffer:
            return None
        utterance = bytes(self._buffer)
        self._buffer.clear()
        self._silence_ms = 0
        self._speech_ms = 0
        return utterance
