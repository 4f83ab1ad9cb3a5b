"""Piper synthesis played through sounddevice."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Callable, Optional

from ..core.errors import SynthesisError
from ..services.schemas import SpeechOptions, Voice
from .playback import PlaybackConfig, SpeechPlayback
from .speech_output import SpeechOutput, sanitize_for_speech
from .tts import PiperConfig, PiperTTS


logger = logging.getLogger(__name__)

# Covers buffering jitter between the queued PCM and the sound card.
PLAYBACK_GUARD_SECONDS = 0.15


class PiperSpeechOutput(SpeechOutput):
    """Synthesize in a worker thread, queue the PCM, resolve after its duration."""

    def __init__(
        self,
        *,
        playback: Optional[SpeechPlayback] = None,
        output_device: str | None = None,
        tts_factory: Callable[[PiperConfig], PiperTTS] = PiperTTS,
    ) -> None:
        self.playback = playback or SpeechPlayback(PlaybackConfig(device_name=output_device))
        self._tts_factory = tts_factory
        self._engines: dict[str, PiperTTS] = {}
        self._engines_lock = threading.Lock()
        self._task: Optional[asyncio.Task[None]] = None

    def speak(self, text: str, options: SpeechOptions) -> asyncio.Future[None]:
        self.cancel()
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(sanitize_for_speech(text), options))
        return self._task

    def cancel(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            self.playback.stop()
            logger.debug("Synthèse interrompue.")

    async def _run(self, text: str, options: SpeechOptions) -> None:
        if not text:
            return
        if options.voice is None or options.voice.model_path is None:
            raise SynthesisError(f"Aucune voix disponible pour {options.locale}.")
        voice = options.voice
        loop = asyncio.get_running_loop()
        rate = options.rate if options.rate > 0 else 1.0
        try:
            engine = await loop.run_in_executor(None, self._ensure_engine, voice)
            pcm, sample_rate, channels = await loop.run_in_executor(
                None,
                lambda: engine.synthesize(text, length_scale=1.0 / rate, noise_scale=options.pitch),
            )
            duration = self.playback.play(pcm, sample_rate=sample_rate, channels=channels)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise SynthesisError(f"Échec de la synthèse Piper: {exc}") from exc
        if duration > 0:
            await asyncio.sleep(duration + PLAYBACK_GUARD_SECONDS)

    def _ensure_engine(self, voice: Voice) -> PiperTTS:
        """Load the Piper voice if missing."""
        if voice.model_path is None:
            raise SynthesisError(f"Voix {voice.name} sans modèle.")
        key = str(voice.model_path)
        with self._engines_lock:
            engine = self._engines.get(key)
            if engine is None:
                config_path = voice.config_path or voice.model_path.with_name(voice.model_path.name + ".json")
                engine = self._tts_factory(PiperConfig(model_path=voice.model_path, config_path=config_path))
                self._engines[key] = engine
            return engine
