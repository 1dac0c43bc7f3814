"""
core.midi_encoder

MidiNote list -> Standard MIDI File, format 0, one track.

Layout of the produced bytes:

    MThd 00000006 0000 0001 <division>
    MTrk <uint32 length> (<VLQ delta> <90|80> <pitch> <velocity>)* 00 FF 2F 00

Only note-on / note-off on channel 0 and the end-of-track meta event are written.
No tempo meta event: readers assume 120 bpm, the ms -> tick mapping uses the caller's bpm.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from typing import List, Literal, Sequence, Tuple

from core.models import MidiNote

logger = logging.getLogger(__name__)

InvalidNotePolicy = Literal["raise", "skip"]

DEFAULT_TICKS_PER_QUARTER_NOTE = 96
DEFAULT_BPM = 120.0

HEADER_CHUNK_TYPE = b"MThd"
TRACK_CHUNK_TYPE = b"MTrk"
HEADER_LENGTH = 6
FORMAT_0 = 0
NUMBER_OF_TRACKS = 1

NOTE_ON = 0x90
NOTE_OFF = 0x80
END_OF_TRACK = b"\xff\x2f\x00"

MAX_VLQ = 0x0FFFFFFF  # 4 bytes
MAX_DIVISION = 0x7FFF  # high bit would mean SMPTE timing


# ---------------------------
# Errors
# ---------------------------
class MidiEncodeError(ValueError):
    """Base error for MIDI encoding."""


class InvalidEncoderConfig(MidiEncodeError):
    """Bad division / bpm / policy."""


class InvalidNoteError(MidiEncodeError):
    """A note that cannot be encoded. `index` is its position in the caller's sequence."""

    def __init__(self, index: int, field: str, reason: str):
        super().__init__(f"note[{index}].{field}: {reason}")
        self.index = index
        self.field = field
        self.reason = reason


@dataclass(frozen=True)
class ScheduledEvent:
    tick: int
    is_on: bool
    pitch: int
    velocity: int

    def to_bytes(self) -> bytes:
        status = NOTE_ON if self.is_on else NOTE_OFF
        return bytes((status, self.pitch, self.velocity))


# ---------------------------
# VLQ
# ---------------------------
def encode_vlq(value: int) -> bytes:
    """
    MIDI variable-length quantity: base 128, most significant group first,
    continuation bit (0x80) on every byte except the last.
    """
    if value < 0:
        raise ValueError(f"VLQ value must be non-negative, got {value}")
    if value > MAX_VLQ:
        raise ValueError(f"VLQ value {value} exceeds SMF limit 0x0FFFFFFF")
    if value == 0:
        return b"\x00"

    out = [value & 0x7F]
    value >>= 7
    while value > 0:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.reverse()
    return bytes(out)


def decode_vlq(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Read one VLQ at `offset`. Returns (value, offset after the quantity)."""
    value = 0
    for i in range(4):
        pos = offset + i
        if pos >= len(data):
            raise ValueError(f"Truncated VLQ at offset {offset}")
        b = data[pos]
        value = (value << 7) | (b & 0x7F)
        if not b & 0x80:
            return value, pos + 1
    raise ValueError(f"VLQ longer than 4 bytes at offset {offset}")


# ---------------------------
# Timing
# ---------------------------
def round_half_up(x: float) -> int:
    # round() is banker's rounding; ticks must round .5 up.
    # floor(x + 0.5) is off for 0.49999999999999994, so compare the fraction instead.
    if not math.isfinite(x):
        raise ValueError(f"cannot round non-finite value {x}")
    f = math.floor(x)
    return f + 1 if x - f >= 0.5 else f


def ticks_per_millisecond(ticks_per_quarter_note: int, bpm: float) -> float:
    # (bpm / 60) quarter notes per second -> ticks per second -> ticks per ms
    return ticks_per_quarter_note * (bpm / 60) / 1000


def ms_to_ticks(ms: float, ticks_per_ms: float) -> int:
    return round_half_up(ms * ticks_per_ms)


def _check_config(ticks_per_quarter_note: int, bpm: float, on_invalid: str) -> None:
    if isinstance(ticks_per_quarter_note, bool) or not isinstance(ticks_per_quarter_note, int):
        raise InvalidEncoderConfig(f"ticks_per_quarter_note must be an int, got {ticks_per_quarter_note!r}")
    if not 0 < ticks_per_quarter_note <= MAX_DIVISION:
        raise InvalidEncoderConfig(
            f"ticks_per_quarter_note must be in 1..{MAX_DIVISION}, got {ticks_per_quarter_note}"
        )
    try:
        bpm_f = float(bpm)
    except (TypeError, ValueError):
        raise InvalidEncoderConfig(f"bpm must be a number, got {bpm!r}")
    if not math.isfinite(bpm_f) or bpm_f <= 0:
        raise InvalidEncoderConfig(f"bpm must be positive, got {bpm}")
    if on_invalid not in ("raise", "skip"):
        raise InvalidEncoderConfig(f"on_invalid must be 'raise' or 'skip', got {on_invalid!r}")


def validate_note(note: MidiNote, index: int) -> None:
    """Raise InvalidNoteError for the first field that can't be encoded."""
    if isinstance(note.pitch, bool) or not isinstance(note.pitch, int) or not 0 <= note.pitch <= 127:
        raise InvalidNoteError(index, "pitch", f"must be an int in 0..127, got {note.pitch!r}")
    if not math.isfinite(note.start_time):
        raise InvalidNoteError(index, "startTime", f"must be finite, got {note.start_time!r}")
    if note.start_time < 0:
        raise InvalidNoteError(index, "startTime", f"must be >= 0, got {note.start_time}")
    if not math.isfinite(note.duration):
        raise InvalidNoteError(index, "duration", f"must be finite, got {note.duration!r}")
    if note.duration <= 0:
        raise InvalidNoteError(index, "duration", f"must be > 0, got {note.duration}")
    if note.velocity is not None and not 0 <= note.velocity <= 127:
        raise InvalidNoteError(index, "velocity", f"must be in 0..127, got {note.velocity}")


def _check_tick_range(note: MidiNote, index: int, ticks_per_ms: float) -> None:
    # finite ms * finite ticks/ms can still overflow to inf
    if not math.isfinite(note.start_time * ticks_per_ms):
        raise InvalidNoteError(index, "startTime", "too large to convert to ticks")
    if not math.isfinite(note.duration * ticks_per_ms):
        raise InvalidNoteError(index, "duration", "too large to convert to ticks")


def _usable_notes(notes: Sequence[MidiNote], on_invalid: str, ticks_per_ms: float) -> List[MidiNote]:
    usable: List[MidiNote] = []
    for i, n in enumerate(notes):
        try:
            validate_note(n, i)
            _check_tick_range(n, i, ticks_per_ms)
        except InvalidNoteError as e:
            if on_invalid == "raise":
                raise
            logger.warning("Skipping invalid note: %s", e)
            continue
        usable.append(n)
    return usable


def schedule_events(
    notes: Sequence[MidiNote],
    ticks_per_quarter_note: int = DEFAULT_TICKS_PER_QUARTER_NOTE,
    bpm: float = DEFAULT_BPM,
    *,
    on_invalid: InvalidNotePolicy = "raise",
) -> List[ScheduledEvent]:
    """
    Note-on / note-off pairs at absolute ticks, sorted by tick.

    Notes are ordered by (start, pitch, duration, velocity) first, each contributing
    its note-on then its note-off; the tick sort is stable, so events sharing a tick
    keep that order whatever the caller's ordering was.
    """
    _check_config(ticks_per_quarter_note, bpm, on_invalid)
    tpm = ticks_per_millisecond(ticks_per_quarter_note, float(bpm))

    usable = _usable_notes(notes, on_invalid, tpm)
    usable.sort(key=lambda n: (n.start_time, n.pitch, n.duration, n.effective_velocity))

    events: List[ScheduledEvent] = []
    for n in usable:
        start = ms_to_ticks(n.start_time, tpm)
        end = start + ms_to_ticks(n.duration, tpm)
        events.append(ScheduledEvent(tick=start, is_on=True, pitch=n.pitch, velocity=n.effective_velocity))
        events.append(ScheduledEvent(tick=end, is_on=False, pitch=n.pitch, velocity=0))

    events.sort(key=lambda e: e.tick)
    return events


def _track_events(events: Sequence[ScheduledEvent]) -> bytes:
    buf = bytearray()
    last_tick = 0
    for ev in events:
        delta = ev.tick - last_tick
        if delta > MAX_VLQ:
            # the tick itself can be hundreds of digits long; keep it out of the message
            raise MidiEncodeError(
                f"Gap before {'note-on' if ev.is_on else 'note-off'} of pitch {ev.pitch} "
                f"exceeds the SMF delta limit of {MAX_VLQ} ticks"
            )
        buf += encode_vlq(delta)
        buf += ev.to_bytes()
        last_tick = ev.tick

    buf += encode_vlq(0)
    buf += END_OF_TRACK
    return bytes(buf)


def encode_midi(
    notes: Sequence[MidiNote],
    ticks_per_quarter_note: int = DEFAULT_TICKS_PER_QUARTER_NOTE,
    bpm: float = DEFAULT_BPM,
    *,
    on_invalid: InvalidNotePolicy = "raise",
) -> bytes:
    """
    Encode notes as a complete SMF format 0 file.

    Args:
        notes: notes in any order; an empty sequence gives a file with only end-of-track
        ticks_per_quarter_note: division written to the header (1..0x7FFF)
        bpm: tempo used to convert ms to ticks
        on_invalid: "raise" -> InvalidNoteError on the first bad note,
                    "skip" -> drop bad notes and log a warning for each

    Raises:
        InvalidEncoderConfig, InvalidNoteError, MidiEncodeError
    """
    events = schedule_events(notes, ticks_per_quarter_note, bpm, on_invalid=on_invalid)
    track = _track_events(events)

    header = HEADER_CHUNK_TYPE + struct.pack(">IHHH", HEADER_LENGTH, FORMAT_0, NUMBER_OF_TRACKS, ticks_per_quarter_note)
    chunk = TRACK_CHUNK_TYPE + struct.pack(">I", len(track)) + track

    logger.debug(
        "Encoded %d notes -> %d events, %d bytes (ppq=%d, bpm=%s)",
        len(events) // 2, len(events), len(header) + len(chunk), ticks_per_quarter_note, bpm,
    )
    return header + chunk
