from __future__ import annotations

import math

import pytest

from pitch_tuner.notes import (
    cents_offset,
    frequency_to_note_number,
    note_frequency,
    note_number_to_name,
    read_note,
)


@pytest.mark.parametrize(
    ("note_number", "name"),
    [(69, "A4"), (60, "C4"), (81, "A5"), (61, "C#4"), (0, "C-1"), (-1, "B-2")],
)
def test_note_number_to_name(note_number: int, name: str) -> None:
    assert note_number_to_name(note_number) == name


def test_frequency_to_note_number() -> None:
    assert frequency_to_note_number(440.0) == 69
    assert frequency_to_note_number(261.63) == 60
    assert frequency_to_note_number(82.41) == 40
    assert frequency_to_note_number(442.0, reference_pitch=442.0) == 69


def test_cents_offset() -> None:
    assert cents_offset(440.0, 69) == 0.0
    assert cents_offset(466.16, 69) == pytest.approx(100.0, abs=0.1)
    assert cents_offset(220.0, 57) == pytest.approx(0.0, abs=1e-9)
    assert cents_offset(440.0, 69, reference_pitch=442.0) < 0.0


def test_note_frequency_round_trips_reference() -> None:
    assert note_frequency(69) == 440.0
    assert note_frequency(81) == pytest.approx(880.0)


def test_read_note_within_semitone_never_exceeds_half_step() -> None:
    reading = read_note(452.0)

    assert reading.note_name == "A4"
    assert reading.note_number == 69
    assert 0.0 < reading.cents <= 50.0


def test_read_note_clamps_cents() -> None:
    reading = read_note(445.0, cents_limit=10.0)

    assert reading.note_name == "A4"
    assert reading.cents == 10.0


@pytest.mark.parametrize("hz", [0.0, -10.0, math.nan, math.inf])
def test_invalid_frequency_raises(hz: float) -> None:
    with pytest.raises(ValueError, match="frequency"):
        frequency_to_note_number(hz)
