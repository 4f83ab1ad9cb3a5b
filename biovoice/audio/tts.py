"""Text-to-speech helpers using Piper."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from piper import PiperVoice, SynthesisConfig


@dataclass(slots=True)
class PiperConfig:
    """Piper model configuration."""

    model_path: Path
    config_path: Path
    speaker_id: int | None = None


class PiperTTS:
    """Thin wrapper around PiperVoice."""

    def __init__(self, config: PiperConfig) -> None:
        self.config = config
        self._voice = self._load_voice(config)

    def synthesize(self, text: str, *, length_scale: float = 1.0, noise_scale: float = 0.667) -> tuple[bytes, int, int]:
        """Generate PCM audio: (int16 bytes, sample_rate, channels)."""
        pcm = bytearray()
        sample_rate = 0
        channels = 1
        for chunk, rate, chunk_channels in self.synthesize_stream(
            text, length_scale=length_scale, noise_scale=noise_scale
        ):
            pcm += chunk
            sample_rate = rate
            channels = chunk_channels
        return bytes(pcm), sample_rate, channels

    def synthesize_stream(
        self,
        text: str,
        *,
        length_scale: float = 1.0,
        noise_scale: float = 0.667,
    ) -> Iterator[tuple[bytes, int, int]]:
        """Yield audio chunks (bytes, sample_rate, channels)."""
        if not text.strip():
            return
        syn_config = SynthesisConfig(
            speaker_id=self.config.speaker_id,
            length_scale=length_scale,
            noise_scale=noise_scale,
        )
        for chunk in self._voice.synthesize(text, syn_config=syn_config):
            yield chunk.audio_int16_bytes, chunk.sample_rate, chunk.sample_channels or 1

    @staticmethod
    def _load_voice(config: PiperConfig) -> PiperVoice:
        if not config.model_path.exists():
            raise FileNotFoundError(f"Piper model not found: {config.model_path}")
        if not config.config_path.exists():
            raise FileNotFoundError(f"Piper config not found: {config.config_path}")
        return PiperVoice.load(str(config.model_path), config_path=str(config.config_path))
