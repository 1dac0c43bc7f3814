"""
Read SMF bytes back with mido (verification / CLI inspect / tests).
"""
from __future__ import annotations

import io
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Tuple

import mido  # type: ignore

from core.models import MidiNote


def _load(data: bytes) -> mido.MidiFile:
    try:
        return mido.MidiFile(file=io.BytesIO(bytes(data)))
    except (OSError, EOFError, ValueError, KeyError, IndexError) as e:
        raise ValueError(f"Invalid MIDI data: {e}") from e


def _is_note_off(msg: Any) -> bool:
    return msg.type == "note_off" or (msg.type == "note_on" and int(msg.velocity) == 0)


def read_track_events(data: bytes) -> List[Dict[str, Any]]:
    """Channel note messages with absolute ticks, in file order."""
    mid = _load(data)
    out: List[Dict[str, Any]] = []
    abs_tick = 0
    for msg in mido.merge_tracks(mid.tracks):
        abs_tick += int(msg.time)
        if msg.type in ("note_on", "note_off"):
            out.append(
                {
                    "tick": abs_tick,
                    "type": "note_off" if _is_note_off(msg) else "note_on",
                    "channel": int(msg.channel),
                    "note": int(msg.note),
                    "velocity": int(msg.velocity),
                }
            )
    return out


def midi_to_notes(data: bytes, bpm: float = 120.0) -> List[MidiNote]:
    """
    Pair note-on/off back into millisecond notes.
    Overlapping presses of the same pitch are closed first-in first-out; dangling
    note-ons are dropped.
    """
    if bpm <= 0:
        raise ValueError(f"bpm must be positive, got {bpm}")
    mid = _load(data)
    ms_per_tick = 60000.0 / (float(bpm) * int(mid.ticks_per_beat))

    active: Dict[Tuple[int, int], Deque[Tuple[int, int]]] = defaultdict(deque)
    notes: List[MidiNote] = []
    for ev in read_track_events(data):
        key = (ev["channel"], ev["note"])
        if ev["type"] == "note_on":
            active[key].append((ev["tick"], ev["velocity"]))
        elif active[key]:
            st_tick, vel = active[key].popleft()
            notes.append(
                MidiNote(
                    pitch=ev["note"],
                    start_time=st_tick * ms_per_tick,
                    duration=(ev["tick"] - st_tick) * ms_per_tick,
                    velocity=vel,
                )
            )

    notes.sort(key=lambda n: (n.start_time, n.pitch))
    return notes


def summarize_midi(data: bytes) -> Dict[str, Any]:
    mid = _load(data)
    events = read_track_events(data)
    pitches = [e["note"] for e in events if e["type"] == "note_on"]

    total_ticks = 0
    for tr in mid.tracks:
        total_ticks = max(total_ticks, sum(int(m.time) for m in tr))

    return {
        "format": int(mid.type),
        "tracks": len(mid.tracks),
        "ticks_per_quarter_note": int(mid.ticks_per_beat),
        "notes": len(pitches),
        "pitch_min": min(pitches) if pitches else None,
        "pitch_max": max(pitches) if pitches else None,
        "total_ticks": total_ticks,
        "bytes": len(data),
    }
