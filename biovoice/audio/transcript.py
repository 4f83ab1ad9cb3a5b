"""Merge incremental recognition fragments into a stable transcript."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from ..services.schemas import RecognitionAlternative


@dataclass(slots=True)
class TranscriptState:
    finalized: str = ""
    interim: str = ""


class TranscriptAccumulator:
    """Finalized text grows fragment by fragment; interim is replaced on every batch.

    Fragments are trusted as delivered: a final fragment seen twice is
    appended twice.
    """

    def __init__(self) -> None:
        self.state = TranscriptState()

    @property
    def finalized(self) -> str:
        return self.state.finalized

    @property
    def interim(self) -> str:
        return self.state.interim

    @property
    def preview(self) -> str:
        """Text a presentation layer shows while listening."""
        return self.state.finalized + self.state.interim

    def on_fragment(self, fragments: Sequence[RecognitionAlternative], start_index: int = 0) -> None:
        interim = ""
        for fragment in fragments[start_index:]:
            if fragment.is_final:
                self.state.finalized += fragment.transcript + " "
            else:
                interim += fragment.transcript
        self.state.interim = interim

    def reset(self) -> None:
        self.state = TranscriptState()

    def consume(self) -> str:
        """Return the trimmed finalized transcript and clear everything."""
        text = self.state.finalized.strip()
        self.reset()
        return text
