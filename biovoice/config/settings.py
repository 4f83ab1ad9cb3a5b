"""Configuration unifiee de l'assistant vocal."""

from __future__ import annotations

import json
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from .paths import project_root


DEFAULT_SYSTEM_PROMPT = (
    "Tu es un professeur de biologie bienveillant qui répond à l'oral, en français. "
    "Réponds en deux ou trois phrases claires, sans listes ni mise en forme, "
    "et termine si besoin par une courte question pour vérifier la compréhension."
)


class Settings(BaseSettings):
    """Parametres globaux de l'assistant."""

    model_config = SettingsConfigDict(
        env_prefix="BIOVOICE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    # Session
    locale: str = "fr-FR"
    bootstrap_prompt: str = "Bonjour, présente-toi."
    system_prompt: str = DEFAULT_SYSTEM_PROMPT

    # Synthese vocale
    speech_rate: float = 1.05
    speech_pitch: float = 0.9
    voices_dir: str | None = None
    default_voice: str | None = None
    voice_premium_markers: list[str] = ["Google"]
    voice_persona_markers: list[str] = ["Aurelie"]
    voice_female_markers: list[str] = ["Female", "Femme"]
    output_device: str | None = None

    # Reconnaissance vocale
    asr_model: str = "small"
    asr_device: str = "cpu"
    asr_compute_type: str = "int8"
    input_device: str | None = None
    vad_aggressiveness: int = 2
    silence_duration_ms: int = 800
    interim_interval_ms: int = 0

    # Backend conversationnel
    chat_base_url: str = "http://127.0.0.1:8080"
    chat_endpoint: str = "/v1/chat/completions"
    chat_api_key: str | None = None
    chat_model: str = "default"
    chat_temperature: float = 0.7
    chat_max_tokens: int = 512
    chat_extra_headers: dict[str, str] = {}
    reply_timeout_seconds: float = 30.0

    # Logs
    log_level: str = "INFO"
    log_rotate_mb: int = 5
    log_retention_days: int = 7

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls.json_config_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def json_config_settings_source() -> dict[str, object]:
        """Charge config.json a la racine si present."""
        config_path = project_root() / "config.json"
        if config_path.is_file():
            try:
                return json.loads(config_path.read_text(encoding="utf-8"))
            except ValueError:
                return {}
        return {}

    @property
    def language(self) -> str:
        """Primary language subtag of the session locale (``fr`` for ``fr-FR``)."""
        return self.locale.replace("_", "-").split("-", 1)[0].lower()


@lru_cache()
def get_settings() -> Settings:
    """Retourne une instance de Settings mise en cache."""
    return Settings()
