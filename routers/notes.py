from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from pydantic import ValidationError

from core.models import QuantizeRequest, QuantizeResponse
from core.quantize import quantize_notes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Notes"])


@router.post("/notes/quantize", response_model=QuantizeResponse)
async def quantize(request: Request) -> QuantizeResponse:
    """
    Snap note start times to the piano-roll grid.
    Body: { notes: [...], bpm, resolution (4|8|16|32), indices? }
    """
    try:
        body = await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="Invalid JSON body")

    try:
        req = QuantizeRequest.model_validate(body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid quantize payload: {e}")

    try:
        notes = quantize_notes(req.notes, req.bpm, req.resolution, indices=req.indices)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.debug("Quantized %d notes (bpm=%s, 1/%d)", len(notes), req.bpm, req.resolution)
    return QuantizeResponse(notes=notes)
