"""
core.quantize

Piano-roll grid snapping. Only start times move; durations are left as recorded.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

from core.midi_encoder import round_half_up
from core.models import MidiNote

RESOLUTIONS = (4, 8, 16, 32)


def grid_step_ms(bpm: float, resolution: int) -> float:
    """Length of one grid step in ms. resolution = steps per whole note (16 -> sixteenths)."""
    if not math.isfinite(bpm) or bpm <= 0:
        raise ValueError(f"bpm must be positive and finite, got {bpm}")
    if resolution not in RESOLUTIONS:
        raise ValueError(f"resolution must be one of {RESOLUTIONS}, got {resolution}")
    ms_per_beat = 60000.0 / bpm
    steps_per_beat = resolution / 4
    step = ms_per_beat / steps_per_beat
    if not math.isfinite(step) or step <= 0:
        # bpm so small or so large that the grid collapses
        raise ValueError(f"bpm out of range for a {resolution}-step grid, got {bpm}")
    return step


def quantize_ms(value_ms: float, bpm: float, resolution: int) -> float:
    if not math.isfinite(value_ms):
        raise ValueError(f"time must be finite, got {value_ms}")
    step = grid_step_ms(bpm, resolution)
    return max(0.0, round_half_up(value_ms / step) * step)


def quantize_notes(
    notes: Sequence[MidiNote],
    bpm: float,
    resolution: int = 16,
    *,
    indices: Optional[Iterable[int]] = None,
) -> List[MidiNote]:
    """
    Snap start times to the grid. `indices` selects notes by position (all when None);
    out-of-range indices are ignored. Order of the input is kept.
    """
    grid_step_ms(bpm, resolution)  # validate once, even for empty input
    selected = set(range(len(notes))) if indices is None else set(indices)

    out: List[MidiNote] = []
    for i, n in enumerate(notes):
        if i in selected:
            n = n.model_copy(update={"start_time": quantize_ms(n.start_time, bpm, resolution)})
        out.append(n)
    return out
