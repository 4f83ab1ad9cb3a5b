from __future__ import annotations

from biovoice.audio.transcript import TranscriptAccumulator
from biovoice.services.schemas import RecognitionAlternative


def _f(text: str, final: bool = True) -> RecognitionAlternative:
    return RecognitionAlternative(transcript=text, is_final=final)


def test_final_fragments_accumulate_with_separator() -> None:
    acc = TranscriptAccumulator()
    acc.on_fragment([_f("bonjour")])
    acc.on_fragment([_f("bonjour"), _f("professeur")], 1)
    assert acc.finalized == "bonjour professeur "
    assert acc.interim == ""


def test_interim_is_replaced_not_accumulated() -> None:
    acc = TranscriptAccumulator()
    acc.on_fragment([_f("la ", False), _f("cellule", False)])
    assert acc.interim == "la cellule"
    acc.on_fragment([_f("la cellule animale", False)])
    assert acc.interim == "la cellule animale"
    acc.on_fragment([_f("la cellule animale")])
    assert acc.interim == ""
    assert acc.preview == "la cellule animale "


def test_start_index_skips_already_applied_fragments() -> None:
    acc = TranscriptAccumulator()
    batch = [_f("un"), _f("deux"), _f("tr", False)]
    acc.on_fragment(batch[:1], 0)
    acc.on_fragment(batch, 1)
    assert acc.finalized == "un deux "
    assert acc.interim == "tr"


def test_chunking_does_not_change_result() -> None:
    words = ["les", "enzymes", "accélèrent", "les", "réactions"]
    one = TranscriptAccumulator()
    one.on_fragment([_f(w) for w in words])

    many = TranscriptAccumulator()
    results: list[RecognitionAlternative] = []
    for word in words:
        results.append(_f(word))
        many.on_fragment(results, len(results) - 1)

    assert one.consume() == many.consume() == "les enzymes accélèrent les réactions"


def test_duplicates_are_trusted() -> None:
    acc = TranscriptAccumulator()
    acc.on_fragment([_f("ADN")])
    acc.on_fragment([_f("ADN")])
    assert acc.finalized == "ADN ADN "


def test_consume_and_reset_clear_state() -> None:
    acc = TranscriptAccumulator()
    acc.on_fragment([_f("  bonjour "), _f("x", False)])
    assert acc.consume() == "bonjour"
    assert acc.finalized == "" and acc.interim == ""
    acc.on_fragment([_f("encore")])
    acc.reset()
    assert acc.preview == ""
