"""
Scale / key tables for the sketchpad keyboard, and the note filter built on them.
"""
from __future__ import annotations

from typing import List

from core.models import KeyItem, ScaleItem

SCALES: List[ScaleItem] = [
    ScaleItem(name="Major", intervals=[0, 2, 4, 5, 7, 9, 11]),
    ScaleItem(name="Minor (Natural)", intervals=[0, 2, 3, 5, 7, 8, 10]),  # Aeolian
    ScaleItem(name="Minor (Harmonic)", intervals=[0, 2, 3, 5, 7, 8, 11]),
    ScaleItem(name="Minor (Melodic)", intervals=[0, 2, 3, 5, 7, 9, 11]),
    ScaleItem(name="Dorian", intervals=[0, 2, 3, 5, 7, 9, 10]),
    ScaleItem(name="Phrygian", intervals=[0, 1, 3, 5, 7, 8, 10]),
    ScaleItem(name="Lydian", intervals=[0, 2, 4, 6, 7, 9, 11]),
    ScaleItem(name="Mixolydian", intervals=[0, 2, 4, 5, 7, 9, 10]),
    ScaleItem(name="Locrian", intervals=[0, 1, 3, 5, 6, 8, 10]),
    ScaleItem(name="Pentatonic Major", intervals=[0, 2, 4, 7, 9]),
    ScaleItem(name="Pentatonic Minor", intervals=[0, 3, 5, 7, 10]),
    ScaleItem(name="Blues", intervals=[0, 3, 5, 6, 7, 10]),
    ScaleItem(name="Whole Tone", intervals=[0, 2, 4, 6, 8, 10]),
    ScaleItem(name="Diminished (Half-Whole)", intervals=[0, 1, 3, 4, 6, 7, 9, 10]),
    ScaleItem(name="Lydian Dominant", intervals=[0, 2, 4, 6, 7, 9, 10]),
    ScaleItem(name="Chromatic", intervals=list(range(12))),
]

# Roots sit in octave 3 (C3 = 48)
KEYS: List[KeyItem] = [
    KeyItem(name=name, root_midi_note=48 + i)
    for i, name in enumerate(
        ["C", "C# / Db", "D", "D# / Eb", "E", "F", "F# / Gb", "G", "G# / Ab", "A", "A# / Bb", "B"]
    )
]

DEFAULT_SCALE_NAME = "Major"
DEFAULT_KEY_NAME = "C"


def _norm(name: str) -> str:
    return " ".join((name or "").split()).lower()


def get_scale(name: str) -> ScaleItem:
    for s in SCALES:
        if _norm(s.name) == _norm(name):
            return s
    raise KeyError(f"Unknown scale: {name}")


def get_key(name: str) -> KeyItem:
    """Accepts the full label ("C# / Db") or either spelling ("C#", "Db")."""
    wanted = _norm(name)
    for k in KEYS:
        if _norm(k.name) == wanted or wanted in [_norm(p) for p in k.name.split("/")]:
            return k
    raise KeyError(f"Unknown key: {name}")


def notes_in_scale_for_key(key: KeyItem, scale: ScaleItem) -> List[int]:
    """Every MIDI note (0-127) that belongs to `scale` rooted at `key`, ascending."""
    root = key.root_midi_note % 12
    found = set()
    for octave in range(10):
        for interval in scale.intervals:
            n = root + interval + octave * 12
            if n <= 127:
                found.add(n)
    return sorted(found)
