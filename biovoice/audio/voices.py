"""Synthesis voice discovery and per-session voice selection."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Callable, Iterable, Optional, Sequence

from ..config.settings import Settings
from ..services.schemas import Voice


logger = logging.getLogger(__name__)

CatalogListener = Callable[[tuple[Voice, ...]], None]


def normalize_locale(code: str) -> str:
    """``fr_FR`` / ``fr-fr`` -> ``fr-FR``."""
    parts = code.replace("_", "-").split("-")
    if len(parts) == 1:
        return parts[0].lower()
    return f"{parts[0].lower()}-{parts[1].upper()}"


class VoiceSelector:
    """Pick one voice for the session locale and keep it once found.

    Priority, first match wins: premium engine marker, persona marker,
    female marker, platform default, any voice of the locale.
    """

    def __init__(
        self,
        *,
        premium_markers: Sequence[str] = ("Google",),
        persona_markers: Sequence[str] = ("Aurelie",),
        female_markers: Sequence[str] = ("Female", "Femme"),
    ) -> None:
        self.premium_markers = tuple(premium_markers)
        self.persona_markers = tuple(persona_markers)
        self.female_markers = tuple(female_markers)
        self._selected: Optional[Voice] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "VoiceSelector":
        return cls(
            premium_markers=settings.voice_premium_markers,
            persona_markers=settings.voice_persona_markers,
            female_markers=settings.voice_female_markers,
        )

    @property
    def selected(self) -> Optional[Voice]:
        return self._selected

    def select(self, locale: str, voices: Iterable[Voice]) -> Optional[Voice]:
        candidates = [voice for voice in voices if voice.locale == locale]
        rules: list[Callable[[Voice], bool]] = [
            lambda v: any(marker in v.name for marker in self.premium_markers),
            lambda v: any(marker in v.name for marker in self.persona_markers),
            lambda v: any(marker in v.name for marker in self.female_markers),
            lambda v: v.default,
            lambda v: True,
        ]
        for rule in rules:
            for voice in candidates:
                if rule(voice):
                    return voice
        return None

    def resolve(self, locale: str, voices: Iterable[Voice]) -> Optional[Voice]:
        """Run :meth:`select` unless a voice is already cached."""
        if self._selected is not None:
            return self._selected
        self._selected = self.select(locale, voices)
        if self._selected is not None:
            logger.info("Voix sélectionnée: %s (%s)", self._selected.name, self._selected.locale)
        return self._selected


class VoiceCatalog:
    """Piper voices installed under a directory (``*.onnx`` + ``*.onnx.json``)."""

    def __init__(self, root: Path, *, default_voice: str | None = None) -> None:
        self.root = root
        self.default_voice = default_voice
        self._voices: tuple[Voice, ...] = ()
        self._listeners: list[CatalogListener] = []

    @property
    def voices(self) -> tuple[Voice, ...]:
        return self._voices

    def subscribe(self, listener: CatalogListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def refresh(self) -> tuple[Voice, ...]:
        """Rescan the directory and notify listeners when the set changed."""
        found = tuple(self._scan())
        if found != self._voices:
            self._voices = found
            logger.info("Catalogue de voix: %d voix disponibles.", len(found))
            for listener in list(self._listeners):
                listener(found)
        return self._voices

    def _scan(self) -> Iterable[Voice]:
        if not self.root.is_dir():
            return []
        voices: list[Voice] = []
        for model_path in sorted(self.root.rglob("*.onnx")):
            config_path = model_path.with_name(model_path.name + ".json")
            if not config_path.is_file():
                continue
            try:
                config = json.loads(config_path.read_text(encoding="utf-8"))
            except ValueError:
                logger.warning("Configuration de voix illisible: %s", config_path)
                continue
            language = config.get("language") or {}
            code = language.get("code") if isinstance(language, dict) else None
            if not code:
                continue
            name = model_path.name[: -len(".onnx")]
            voices.append(
                Voice(
                    name=name,
                    locale=normalize_locale(code),
                    default=name == self.default_voice,
                    model_path=model_path,
                    config_path=config_path,
                )
            )
        return voices
