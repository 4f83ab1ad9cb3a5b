"""Error taxonomy surfaced to the user through the conversation controller."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    """Category of a user-visible failure."""

    PERMISSION_DENIED = "permission_denied"
    RECOGNITION_FAILURE = "recognition_failure"
    SYNTHESIS_FAILURE = "synthesis_failure"
    BACKEND_FAILURE = "backend_failure"
    NOT_INITIALIZED = "not_initialized"


class AssistantError(Exception):
    """Base error: a fixed user-facing message plus an optional technical detail."""

    kind: ErrorKind = ErrorKind.RECOGNITION_FAILURE
    user_message: str = "Une erreur est survenue."

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.user_message)
        self.detail = detail

    @property
    def message(self) -> str:
        return self.user_message


class PermissionDenied(AssistantError):
    kind = ErrorKind.PERMISSION_DENIED
    user_message = (
        "L'accès au microphone est refusé. "
        "Veuillez l'autoriser dans les paramètres de votre système."
    )


class RecognitionFailure(AssistantError):
    kind = ErrorKind.RECOGNITION_FAILURE
    user_message = "Une erreur de reconnaissance vocale est survenue."


class SynthesisError(AssistantError):
    """Raised (or set on the speak future) when playback fails."""

    kind = ErrorKind.SYNTHESIS_FAILURE
    user_message = "Désolé, une erreur de synthèse vocale est survenue."


class BackendError(AssistantError):
    """Raised by the chat client for any unusable backend outcome."""

    kind = ErrorKind.BACKEND_FAILURE
    user_message = "Le service de conversation ne répond pas. Réessayez dans un instant."


class NotInitialized(AssistantError):
    kind = ErrorKind.NOT_INITIALIZED
    user_message = "La session de chat n'est pas initialisée."


PERMISSION_CODES = frozenset({"not-allowed", "service-not-allowed"})


def recognition_error(code: str) -> AssistantError:
    """Map a capture error code to the matching user-facing error."""
    if code in PERMISSION_CODES:
        return PermissionDenied(f"capture refusée ({code})")
    return RecognitionFailure(f"capture en erreur ({code})")
