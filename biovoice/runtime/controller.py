"""Conversation state machine: microphone control, chat backend and speech output."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Iterable, Optional

from ..audio.speech_input import SpeechInput
from ..audio.speech_output import SpeechOutput
from ..audio.voices import VoiceSelector
from ..config.settings import Settings
from ..core.errors import AssistantError, BackendError, NotInitialized, SynthesisError, recognition_error
from ..core.trace import new_trace_id
from ..services.chat import ChatClient
from ..services.schemas import RecognitionError, RecognitionResult, Role, SpeechOptions, Voice
from ..state.session import ConversationView, Session, Status


logger = logging.getLogger(__name__)

ViewListener = Callable[[ConversationView], None]


class ConversationController:
    """High-level coordinator of one voice session.

    Sole writer of :class:`Session`. All methods and adapter callbacks run
    on the event loop thread, so transitions never interleave.

    Tap semantics by status: Idle/Error start listening, Listening asks the
    capture to stop (the status only changes on its end event), Speaking
    cancels the utterance, Thinking is ignored.
    """

    def __init__(
        self,
        session: Session,
        *,
        settings: Settings,
        speech_input: SpeechInput,
        speech_output: SpeechOutput,
        chat_client: ChatClient,
        voice_selector: Optional[VoiceSelector] = None,
    ) -> None:
        self.session = session
        self.settings = settings
        self.speech_input = speech_input
        self.speech_output = speech_output
        self.chat_client = chat_client
        self.voice_selector = voice_selector or VoiceSelector.from_settings(settings)
        self._listeners: list[ViewListener] = []
        self._reply_task: Optional[asyncio.Task[None]] = None
        self._utterance = 0

        self.speech_input.bind(
            on_result=self._handle_result,
            on_error=self._handle_recognition_error,
            on_end=self._handle_capture_end,
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def view(self) -> ConversationView:
        view = ConversationView.of(self.session)
        if self.session.status is not Status.LISTENING and view.transcript_preview:
            return ConversationView(
                status=view.status,
                conversation_log=view.conversation_log,
                transcript_preview="",
                error_message=view.error_message,
            )
        return view

    def subscribe(self, listener: ViewListener) -> Callable[[], None]:
        """Call ``listener`` with a fresh view after every change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def update_voices(self, voices: Iterable[Voice]) -> Optional[Voice]:
        """Resolve the session voice from the current catalog (first hit is kept)."""
        self.session.voice = self.voice_selector.resolve(self.session.locale, voices)
        return self.session.voice

    async def start(self) -> None:
        """Open the chat session and speak the bootstrap greeting.

        The greeting is skipped when a turn is already under way (the user
        tapped first); that turn then uses the freshly opened session.
        """
        if self.session.chat is None:
            self.session.chat = self.chat_client.create_session()
            logger.info("Session de chat %s ouverte.", self.session.chat.id)
        if self.session.status not in (Status.IDLE, Status.ERROR):
            logger.info("Accueil ignoré: tour en cours (%s).", self.session.status.value)
            return
        new_trace_id()
        self.session.error = None
        self._set_status(Status.THINKING)
        self._reply_task = asyncio.create_task(self._request_reply(self.settings.bootstrap_prompt))
        await self._reply_task

    def toggle_microphone(self) -> None:
        """The single user action."""
        status = self.session.status
        if status is Status.THINKING:
            logger.debug("Commande ignorée pendant la réflexion.")
            return

        self.session.error = None
        if status is Status.SPEAKING:
            self._cancel_speech()
            self._set_status(Status.IDLE)
            return
        if status is Status.LISTENING:
            logger.debug("Arrêt de l'écoute demandé.")
            self.speech_input.stop()
            self._notify()
            return

        new_trace_id()
        self.session.transcript.reset()
        self._set_status(Status.LISTENING)
        self.speech_input.start()

    async def shutdown(self) -> None:
        """Cancel capture, synthesis and any pending reply; detach listeners."""
        self._listeners.clear()
        self.speech_input.bind()
        self.speech_input.abort()
        self._cancel_speech()
        task = self._reply_task
        self._reply_task = None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    # ------------------------------------------------------------------ #
    # Speech input events
    # ------------------------------------------------------------------ #
    def _handle_result(self, event: RecognitionResult) -> None:
        if self.session.status is not Status.LISTENING:
            return
        self.session.transcript.on_fragment(event.results, event.result_index)
        self._notify()

    def _handle_recognition_error(self, event: RecognitionError) -> None:
        if self.session.status is not Status.LISTENING:
            return
        self._fail(recognition_error(event.code))

    def _handle_capture_end(self) -> None:
        if self.session.status is not Status.LISTENING:
            return
        text = self.session.transcript.consume()
        if not text:
            logger.info("Rien n'a été entendu.")
            self._set_status(Status.IDLE)
            return
        self.session.append(Role.USER, text)
        self._set_status(Status.THINKING)
        self._reply_task = asyncio.create_task(self._request_reply(text))

    # ------------------------------------------------------------------ #
    # Backend and speech output
    # ------------------------------------------------------------------ #
    async def _request_reply(self, text: str) -> None:
        handle = self.session.chat
        if handle is None:
            self._fail(NotInitialized())
            return
        try:
            reply = await asyncio.wait_for(
                self.chat_client.send(handle, text),
                timeout=self.settings.reply_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._fail(BackendError(f"Pas de réponse après {self.settings.reply_timeout_seconds:g} s."))
            return
        except AssistantError as exc:
            self._fail(exc)
            return
        except Exception as exc:
            logger.exception("Appel au backend en échec.")
            self._fail(BackendError(str(exc)))
            return
        if self.session.status is not Status.THINKING:
            return
        self.session.append(Role.ASSISTANT, reply)
        self._speak(reply)

    def _speak(self, text: str) -> None:
        self._utterance += 1
        utterance = self._utterance
        self._set_status(Status.SPEAKING)
        options = SpeechOptions(
            locale=self.session.locale,
            rate=self.settings.speech_rate,
            pitch=self.settings.speech_pitch,
            voice=self.session.voice,
        )
        future = self.speech_output.speak(text, options)
        future.add_done_callback(lambda fut: self._handle_speech_done(utterance, fut))

    def _handle_speech_done(self, utterance: int, future: asyncio.Future[None]) -> None:
        exc = None if future.cancelled() else future.exception()
        if utterance != self._utterance or self.session.status is not Status.SPEAKING:
            if exc is not None:
                logger.debug("Erreur de synthèse ignorée (énoncé périmé): %s", exc)
            return
        if exc is None:
            self._set_status(Status.IDLE)
        elif isinstance(exc, AssistantError):
            self._fail(exc)
        else:
            self._fail(SynthesisError(str(exc)))

    def _cancel_speech(self) -> None:
        self._utterance += 1
        self.speech_output.cancel()

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _fail(self, exc: AssistantError) -> None:
        logger.warning("%s: %s", exc.kind.value, exc)
        self.session.error = exc
        self._set_status(Status.ERROR)

    def _set_status(self, status: Status) -> None:
        if status is not self.session.status:
            logger.debug("Statut %s -> %s", self.session.status.value, status.value)
        self.session.status = status
        self._notify()

    def _notify(self) -> None:
        view = self.view
        for listener in list(self._listeners):
            try:
                listener(view)
            except Exception:
                logger.exception("Listener de vue en erreur.")
