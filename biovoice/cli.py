from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import typer

from .audio.voices import VoiceCatalog, VoiceSelector
from .config.paths import voices_dir
from .config.settings import Settings, get_settings
from .core.logger import configure_logging
from .runtime.controller import ConversationController
from .services.chat import ChatClient
from .services.schemas import Role
from .state.session import ConversationView, Session, Status


cli = typer.Typer(name="biovoice", help="Assistant Biologie (voix)")

_SECRET_FIELDS = ("chat_api_key",)


def _resolve_settings(locale: Optional[str]) -> Settings:
    settings = get_settings()
    if locale:
        settings = settings.model_copy(update={"locale": locale})
    return settings


def _catalog(settings: Settings) -> VoiceCatalog:
    root = Path(settings.voices_dir) if settings.voices_dir else voices_dir()
    return VoiceCatalog(root, default_voice=settings.default_voice)


class ConsoleView:
    """Print status changes and new conversation messages."""

    def __init__(self) -> None:
        self._status: Optional[Status] = None
        self._printed = 0

    def __call__(self, view: ConversationView) -> None:
        for message in view.conversation_log[self._printed :]:
            who = "Vous" if message.role is Role.USER else "Assistant"
            typer.echo(f"{who}: {message.text}")
        self._printed = len(view.conversation_log)
        if view.status is not self._status:
            self._status = view.status
            if view.error_message:
                typer.echo(f"! {view.error_message}", err=True)
            typer.echo(f"[{view.control_label}]")


async def _run_session(settings: Settings) -> None:
    from .audio.piper_output import PiperSpeechOutput
    from .audio.whisper_input import WhisperSpeechInput

    catalog = _catalog(settings)
    chat_client = ChatClient(settings)
    controller = ConversationController(
        Session(locale=settings.locale),
        settings=settings,
        speech_input=WhisperSpeechInput(settings),
        speech_output=PiperSpeechOutput(output_device=settings.output_device),
        chat_client=chat_client,
    )
    controller.subscribe(ConsoleView())
    catalog.subscribe(controller.update_voices)
    catalog.refresh()
    if controller.session.voice is None:
        typer.echo(f"Aucune voix {settings.locale} trouvée sous {catalog.root}.", err=True)

    bootstrap = asyncio.create_task(controller.start())
    loop = asyncio.get_running_loop()
    typer.echo("Entrée pour parler ou arrêter, 'q' pour quitter.")
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line or line.strip().lower() == "q":
                break
            catalog.refresh()
            controller.toggle_microphone()
    finally:
        await controller.shutdown()
        if not bootstrap.done():
            bootstrap.cancel()
        await asyncio.gather(bootstrap, return_exceptions=True)
        await chat_client.aclose()


@cli.command()
def run(locale: Optional[str] = typer.Option(None, "--locale", help="Locale de la session (ex: fr-FR)")) -> None:
    """Démarrer une session vocale dans le terminal."""
    settings = _resolve_settings(locale)
    configure_logging(settings)
    asyncio.run(_run_session(settings))


@cli.command()
def voices(locale: Optional[str] = typer.Option(None, "--locale")) -> None:
    """Lister les voix installées et la voix retenue."""
    settings = _resolve_settings(locale)
    catalog = _catalog(settings)
    found = catalog.refresh()
    selector = VoiceSelector.from_settings(settings)
    selected = selector.resolve(settings.locale, found)
    if not found:
        typer.echo(f"Aucune voix sous {catalog.root}.")
        raise typer.Exit(code=1)
    for voice in found:
        marker = "*" if voice == selected else " "
        typer.echo(f"{marker} {voice.name} ({voice.locale})")


@cli.command("config")
def show_config() -> None:
    """Afficher la configuration effective (secrets masqués)."""
    payload = get_settings().model_dump()
    for name in _SECRET_FIELDS:
        if payload.get(name):
            payload[name] = "***"
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


if __name__ == "__main__":  # pragma: no cover
    cli()
