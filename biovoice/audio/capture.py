"""Microphone capture for the speech input."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Protocol

import sounddevice as sd


LOGGER = logging.getLogger(__name__)


class FrameConsumer(Protocol):
    """Protocol for streaming audio frames."""

    def __call__(self, frame: bytes) -> None: ...


@dataclass(slots=True)
class CaptureConfig:
    """Microphone capture configuration."""

    sample_rate: int = 16_000
    channels: int = 1
    frame_duration_ms: int = 20
    device_name: str | None = None


class MicrophoneCapture:
    """Open and close a raw int16 input stream, forwarding frames to a consumer.

    Frames are delivered on the PortAudio thread.
    """

    def __init__(self, config: CaptureConfig | None = None) -> None:
        self.config = config or CaptureConfig()
        self._consumer: Callable[[bytes], None] | None = None
        self._stream: sd.RawInputStream | None = None
        self._lock = Lock()
        self._running = False

    def bind(self, consumer: FrameConsumer) -> None:
        """Register the frame consumer."""
        self._consumer = consumer

    @property
    def running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Start microphone capture (raises ``sd.PortAudioError`` when the device is unavailable)."""
        if self._consumer is None:
            raise RuntimeError("No audio consumer registered.")
        with self._lock:
            if self._running:
                return
            frame_size = int(self.config.sample_rate * self.config.frame_duration_ms / 1000)
            stream = sd.RawInputStream(
                samplerate=self.config.sample_rate,
                channels=self.config.channels,
                dtype="int16",
                blocksize=frame_size,
                callback=self._on_frame,
                device=self.config.device_name,
            )
            stream.start()
            self._stream = stream
            self._running = True
            LOGGER.debug("Microphone capture started.")

    def stop(self) -> None:
        """Stop microphone capture."""
        with self._lock:
            if not self._running:
                return
            assert self._stream is not None
            self._stream.stop()
            self._stream.close()
            self._stream = None
            self._running = False
            LOGGER.debug("Microphone capture stopped.")

    def _on_frame(self, indata, frames: int, time, status) -> None:  # type: ignore[no-untyped-def]
        if status:  # pragma: no cover
            LOGGER.warning("Microphone status: %s", status)
        if self._consumer is not None:
            self._consumer(bytes(indata))
