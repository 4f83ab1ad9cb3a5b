"""PCM playback through a sounddevice output stream."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass

import sounddevice as sd


logger = logging.getLogger(__name__)

BYTES_PER_SAMPLE = 2  # pcm_s16le


@dataclass(slots=True)
class PlaybackConfig:
    """Playback configuration."""

    sample_rate: int = 22_050
    channels: int = 1
    device_name: str | None = None


class SpeechPlayback:
    """Manage audio output for synthesized speech."""

    def __init__(self, config: PlaybackConfig | None = None) -> None:
        self.config = config or PlaybackConfig()
        self._buffer = deque[bytes]()
        self._lock = threading.RLock()
        self._stream: sd.RawOutputStream | None = None

    def play(self, pcm_data: bytes, *, sample_rate: int, channels: int = 1) -> float:
        """Queue a PCM buffer and return its duration in seconds."""
        if not pcm_data or sample_rate <= 0:
            return 0.0
        with self._lock:
            if sample_rate != self.config.sample_rate or channels != self.config.channels:
                self._close_stream()
                self.config.sample_rate = sample_rate
                self.config.channels = channels
            self._ensure_stream()
            self._buffer.append(pcm_data)
        return len(pcm_data) / (sample_rate * max(1, channels) * BYTES_PER_SAMPLE)

    def stop(self) -> None:
        """Stop playback and clear the buffer."""
        with self._lock:
            self._buffer.clear()
            self._close_stream()

    def _close_stream(self) -> None:
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None

    def _ensure_stream(self) -> None:
        if self._stream is not None:
            if not self._stream.active:
                self._stream.start()
            return
        self._stream = sd.RawOutputStream(
            samplerate=self.config.sample_rate,
            channels=self.config.channels,
            dtype="int16",
            callback=self._on_write,
            device=self.config.device_name,
        )
        self._stream.start()

    def _on_write(self, outdata, frames: int, time, status) -> None:  # type: ignore[no-untyped-def]
        if status:  # pragma: no cover
            logger.warning("Statut de sortie audio: %s", status)
        with self._lock:
            if not self._buffer:
                outdata[:] = b"\x00" * len(outdata)
                return
            chunk = self._buffer.popleft()
            if len(chunk) >= len(outdata):
                outdata[:] = chunk[: len(outdata)]
                remainder = chunk[len(outdata) :]
                if remainder:
                    self._buffer.appendleft(remainder)
            else:
                outdata[: len(chunk)] = chunk
                outdata[len(chunk) :] = b"\x00" * (len(outdata) - len(chunk))
