"""Microphone + WebRTC VAD + faster-whisper implementation of the speech input."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

import sounddevice as sd

from ..config.settings import Settings
from ..services.schemas import RecognitionAlternative, RecognitionError, RecognitionResult
from .capture import CaptureConfig, MicrophoneCapture
from .speech_input import SpeechInput
from .transcriber import FasterWhisperEngine, WhisperConfig
from .vad import UtteranceSegmenter, VADConfig, VoiceActivityDetector


logger = logging.getLogger(__name__)


class Transcriber(Protocol):
    def transcribe(self, pcm: bytes) -> str: ...

def capture_error_code(exc: BaseException) -> str:
    """Classify a failure to open the microphone."""
    if isinstance(exc, PermissionError):
        return "not-allowed"
    lowered = str(exc).lower()
    if "permission" in lowered or "denied" in lowered:
        return "not-allowed"
    return "audio-capture"


class WhisperSpeechInput(SpeechInput):
    """Microphone frames -> VAD utterances -> faster-whisper fragments.

    Every utterance closed by silence becomes one final fragment. With
    ``interim_interval_ms`` > 0 the open utterance is also transcribed
    periodically and reported as a non-final fragment.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        capture: Optional[MicrophoneCapture] = None,
        detector: Optional[VoiceActivityDetector] = None,
        transcriber: Optional[Transcriber] = None,
    ) -> None:
        super().__init__()
        self.settings = settings
        self.capture = capture or MicrophoneCapture(CaptureConfig(device_name=settings.input_device))
        self.capture.bind(self._handle_frame)
        self.detector = detector or VoiceActivityDetector(VADConfig(aggressiveness=settings.vad_aggressiveness))
        self.transcriber: Transcriber = transcriber or FasterWhisperEngine(
            WhisperConfig(
                model=settings.asr_model,
                device=settings.asr_device,
                compute_type=settings.asr_compute_type,
                language=settings.language,
            )
        )
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self._worker: Optional[asyncio.Task[None]] = None
        self._finals: list[RecognitionAlternative] = []
        self._active = False
        self._stopping = False

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        if self._active:
            return
        self._loop = asyncio.get_running_loop()
        self._queue = asyncio.Queue()
        self._finals = []
        self._active = True
        self._stopping = False
        try:
            self.capture.start()
        except (sd.PortAudioError, OSError, RuntimeError) as exc:
            code = capture_error_code(exc)
            logger.warning("Ouverture du microphone impossible (%s): %s", code, exc)
            self._active = False
            self._loop.call_soon(self._emit_error, RecognitionError(code=code, detail=str(exc)))
            self._loop.call_soon(self._emit_end)
            return
        self._worker = self._loop.create_task(self._consume())

    def stop(self) -> None:
        if not self._active or self._stopping:
            return
        self._stopping = True
        self.capture.stop()
        # Queued behind frames already handed over by the capture thread.
        loop = self._loop or asyncio.get_running_loop()
        loop.call_soon(self._queue.put_nowait, None)

    def abort(self) -> None:
        """Stop immediately, dropping pending audio."""
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
        self.capture.stop()

    def _handle_frame(self, frame: bytes) -> None:
        """Receive frames from the capture callback (PortAudio thread)."""
        loop = self._loop
        if loop is None or not self._active:
            return
        try:
            loop.call_soon_threadsafe(self._queue.put_nowait, frame)
        except RuntimeError:  # pragma: no cover - loop closed
            self._active = False

    async def _consume(self) -> None:
        segmenter = UtteranceSegmenter(
            self.detector,
            sample_rate=self.capture.config.sample_rate,
            frame_duration_ms=self.capture.config.frame_duration_ms,
            silence_duration_ms=self.settings.silence_duration_ms,
        )
        interval = self.settings.interim_interval_ms
        next_interim = interval
        try:
            while True:
                frame = await self._queue.get()
                if frame is None:
                    break
                utterance = segmenter.push(frame)
                if utterance is not None:
                    await self._transcribe(utterance, final=True)
                    next_interim = interval
                elif interval > 0 and segmenter.speech_ms >= next_interim:
                    await self._transcribe(segmenter.pending, final=False)
                    next_interim = segmenter.speech_ms + interval
            remaining = segmenter.flush()
            if remaining is not None:
                await self._transcribe(remaining, final=True)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Transcription impossible.")
            self._emit_error(RecognitionError(code="transcription-failed", detail=str(exc)))
        finally:
            self.capture.stop()
            self._active = False
            self._stopping = False
            self._emit_end()

    async def _transcribe(self, pcm: bytes, *, final: bool) -> None:
        loop = asyncio.get_running_loop()
        text = (await loop.run_in_executor(None, self.transcriber.transcribe, pcm)).strip()
        if final:
            if text:
                self._finals.append(RecognitionAlternative(transcript=text, is_final=True))
                index = len(self._finals) - 1
            else:
                index = len(self._finals)
            self._emit_result(RecognitionResult(result_index=index, results=tuple(self._finals)))
        elif text:
            interim = RecognitionAlternative(transcript=text, is_final=False)
            self._emit_result(
                RecognitionResult(result_index=len(self._finals), results=(*self._finals, interim))
            )
