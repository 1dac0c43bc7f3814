"""
Export routes: notes JSON -> MIDI bytes (no persistence).
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response

from core.config import get_settings
from core.midi_encoder import MidiEncodeError, encode_midi
from core.utils import export_filename, parse_notes_payload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Export"])


@router.post("/export/midi")
async def export_midi(request: Request):
    """
    Export recorded / edited notes to a Standard MIDI File (format 0).

    Body:
      { notes: [{ pitch, startTime, duration, velocity? }], bpm?, ticksPerQuarterNote? }
      (a bare notes array is accepted too)
    Response: MIDI file bytes, Content-Type: audio/midi
    """
    try:
        body = await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    try:
        req = parse_notes_payload(body)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    s = get_settings()
    if len(req.notes) > s.max_export_notes:
        raise HTTPException(
            status_code=400,
            detail=f"Too many notes: {len(req.notes)} > {s.max_export_notes}",
        )

    ppq = req.ticks_per_quarter_note if req.ticks_per_quarter_note is not None else s.ticks_per_quarter_note
    bpm = req.bpm if req.bpm is not None else s.default_bpm

    try:
        midi_bytes = encode_midi(req.notes, ppq, bpm, on_invalid=s.invalid_note_policy)  # type: ignore[arg-type]
    except MidiEncodeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("MIDI export failed")
        raise HTTPException(status_code=500, detail="Failed to build MIDI")

    filename = export_filename(s.export_filename_prefix)
    logger.info("Exported %d notes -> %s (%d bytes)", len(req.notes), filename, len(midi_bytes))

    return Response(
        content=midi_bytes,
        media_type="audio/midi",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
        },
    )
