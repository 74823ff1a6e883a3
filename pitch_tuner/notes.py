from __future__ import annotations

import math
from dataclasses import dataclass

A4_HZ = 440.0
A4_NOTE_NUMBER = 69

_NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]


@dataclass(frozen=True)
class NoteReading:
    note_number: int
    note_name: str
    cents: float


def frequency_to_note_number(hz: float, reference_pitch: float = A4_HZ) -> int:
    """Nearest MIDI-style note number (A4 = 69), halves rounded up."""
    semitones = 12.0 * math.log2(_checked_hz(hz) / _checked_hz(reference_pitch))
    return int(math.floor(semitones + A4_NOTE_NUMBER + 0.5))


def note_number_to_name(note_number: int) -> str:
    n = int(note_number)
    name = _NOTE_NAMES[n % 12]
    octave = n // 12 - 1
    return f"{name}{octave}"


def note_frequency(note_number: int, reference_pitch: float = A4_HZ) -> float:
    return float(reference_pitch) * 2.0 ** ((int(note_number) - A4_NOTE_NUMBER) / 12.0)


def cents_offset(hz: float, note_number: int, reference_pitch: float = A4_HZ) -> float:
    ref = note_frequency(note_number, _checked_hz(reference_pitch))
    return 1200.0 * math.log2(_checked_hz(hz) / ref)


def read_note(hz: float, reference_pitch: float = A4_HZ, cents_limit: float = 100.0) -> NoteReading:
    """Map a frequency to its nearest note with cents clamped to ``[-cents_limit, cents_limit]``."""
    n = frequency_to_note_number(hz, reference_pitch)
    cents = cents_offset(hz, n, reference_pitch)
    cents = max(-cents_limit, min(cents_limit, cents))
    return NoteReading(note_number=n, note_name=note_number_to_name(n), cents=float(cents))


def _checked_hz(hz: float) -> float:
    value = float(hz)
    if not math.isfinite(value) or value <= 0.0:
        raise ValueError(f"frequency must be positive and finite, got {hz}")
    return value
