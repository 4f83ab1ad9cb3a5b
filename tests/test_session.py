from __future__ import annotations

import pytest

from biovoice.core.errors import (
    BackendError,
    ErrorKind,
    PermissionDenied,
    RecognitionFailure,
    recognition_error,
)
from biovoice.services.schemas import RecognitionAlternative, Role
from biovoice.state.session import LISTENING_PLACEHOLDER, ConversationView, Session, Status


@pytest.mark.parametrize(
    "status, label, enabled",
    [
        (Status.IDLE, "Appuyez pour parler", True),
        (Status.LISTENING, "Appuyez pour arrêter", True),
        (Status.THINKING, "Réflexion...", False),
        (Status.SPEAKING, "En train de parler...", True),
        (Status.ERROR, "Réessayer", True),
    ],
)
def test_control_label_and_availability(status, label, enabled):
    view = ConversationView.of(Session(status=status))
    assert view.control_label == label
    assert view.control_enabled is enabled


def test_view_is_a_snapshot():
    session = Session(status=Status.LISTENING)
    session.append(Role.USER, "Bonjour")
    session.transcript.on_fragment([RecognitionAlternative("la photo", is_final=False)])
    view = ConversationView.of(session)

    session.append(Role.ASSISTANT, "Salut")
    assert [m.text for m in view.conversation_log] == ["Bonjour"]
    assert view.listening_text == "la photo"
    assert view.is_listening and not view.is_speaking
    assert ConversationView.of(Session()).listening_text == LISTENING_PLACEHOLDER


def test_error_message_is_user_facing():
    session = Session(status=Status.ERROR, error=BackendError("HTTP 502"))
    view = ConversationView.of(session)
    assert view.error_message == BackendError.user_message
    assert str(session.error) == "HTTP 502"


@pytest.mark.parametrize(
    "code, expected, kind",
    [
        ("not-allowed", PermissionDenied, ErrorKind.PERMISSION_DENIED),
        ("service-not-allowed", PermissionDenied, ErrorKind.PERMISSION_DENIED),
        ("network", RecognitionFailure, ErrorKind.RECOGNITION_FAILURE),
        ("audio-capture", RecognitionFailure, ErrorKind.RECOGNITION_FAILURE),
    ],
)
def test_recognition_error_mapping(code, expected, kind):
    error = recognition_error(code)
    assert isinstance(error, expected)
    assert error.kind is kind
    assert code in str(error)
