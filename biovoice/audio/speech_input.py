"""Speech input contract shared by every capture engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..services.schemas import RecognitionError, RecognitionResult


ResultCallback = Callable[[RecognitionResult], None]
ErrorCallback = Callable[[RecognitionError], None]
EndCallback = Callable[[], None]


class SpeechInput(ABC):
    """Capture session emitting result batches, errors and one end event.

    The end event is the only point where the transcript is complete.
    ``start()`` while active and ``stop()`` while inactive do nothing.
    """

    def __init__(self) -> None:
        self._on_result: Optional[ResultCallback] = None
        self._on_error: Optional[ErrorCallback] = None
        self._on_end: Optional[EndCallback] = None

    def bind(
        self,
        *,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_end: Optional[EndCallback] = None,
    ) -> None:
        """Register (or with no arguments, detach) the event listeners."""
        self._on_result = on_result
        self._on_error = on_error
        self._on_end = on_end

    @property
    @abstractmethod
    def active(self) -> bool: ...

    @abstractmethod
    def start(self) -> None: ...

    @abstractmethod
    def stop(self) -> None: ...

    def abort(self) -> None:
        """Tear the session down at process end; defaults to a graceful stop."""
        self.stop()

    def _emit_result(self, event: RecognitionResult) -> None:
        if self._on_result:
            self._on_result(event)

    def _emit_error(self, event: RecognitionError) -> None:
        if self._on_error:
            self._on_error(event)

    def _emit_end(self) -> None:
        if self._on_end:
            self._on_end()
