from __future__ import annotations

from typing import List, Optional

# ---------------------------------------------------------
# Pydantic V2 only (populate_by_name / model_copy / ConfigDict)
# ---------------------------------------------------------
from pydantic import BaseModel, Field
from pydantic.config import ConfigDict


DEFAULT_VELOCITY = 100


# =========================
# Base Model Config
# =========================
class _WireModel(BaseModel):
    """
    Wire names are camelCase (what the sketchpad front-end sends),
    Python code may use snake_case. Extra keys (e.g. the editor's note id) are ignored.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _ContractBaseModel(BaseModel):
    """Responses: forbid extra fields."""
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


# =========================
# Notes
# =========================
class MidiNote(_WireModel):
    """
    One recorded or edited note. Times are in milliseconds from the start of the timeline.

    Only the shape is validated here. Range checks (pitch 0-127, duration > 0, finite
    times) are done by the encoder so that every entry point shares one invalid-note policy.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    pitch: int = Field(..., description="MIDI note number 0-127")
    start_time: float = Field(..., alias="startTime", description="Start time in ms")
    duration: float = Field(..., description="Duration in ms")
    velocity: Optional[int] = Field(default=None, description="MIDI velocity 0-127, absent/0 means 100")

    @property
    def effective_velocity(self) -> int:
        # absent and 0 both mean "not provided"
        return self.velocity or DEFAULT_VELOCITY

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


class ExportRequest(_WireModel):
    """
    Body of POST /export/midi.
    bpm / ticksPerQuarterNote fall back to settings when omitted.
    """
    notes: List[MidiNote] = Field(default_factory=list)
    bpm: Optional[float] = Field(default=None, description="Tempo used to map ms to ticks")
    ticks_per_quarter_note: Optional[int] = Field(
        default=None, alias="ticksPerQuarterNote", description="SMF division"
    )


# =========================
# Scales / keys
# =========================
class ScaleItem(_ContractBaseModel):
    name: str = Field(..., min_length=1)
    intervals: List[int] = Field(..., min_length=1)


class KeyItem(_ContractBaseModel):
    name: str = Field(..., min_length=1)
    root_midi_note: int = Field(..., alias="rootMidiNote", ge=0, le=127)


class ScaleNotesResponse(_ContractBaseModel):
    key: str
    scale: str
    notes: List[int]


# =========================
# Piano-roll quantize
# =========================
class QuantizeRequest(_WireModel):
    notes: List[MidiNote] = Field(default_factory=list)
    bpm: float = Field(120.0, description="Tempo the grid is derived from")
    resolution: int = Field(16, description="Grid steps per whole note (8 = eighths, 16 = sixteenths)")
    indices: Optional[List[int]] = Field(default=None, description="Only quantize these notes (all when omitted)")


class QuantizeResponse(_ContractBaseModel):
    notes: List[MidiNote]
