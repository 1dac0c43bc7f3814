from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Query

from core.models import KeyItem, ScaleItem, ScaleNotesResponse
from core.scales import (
    DEFAULT_KEY_NAME,
    DEFAULT_SCALE_NAME,
    KEYS,
    SCALES,
    get_key,
    get_scale,
    notes_in_scale_for_key,
)

router = APIRouter(prefix="/api/v1", tags=["Scales"])


@router.get("/scales", response_model=List[ScaleItem])
def list_scales() -> List[ScaleItem]:
    return SCALES


@router.get("/keys", response_model=List[KeyItem])
def list_keys() -> List[KeyItem]:
    return KEYS


@router.get("/scales/notes", response_model=ScaleNotesResponse)
def scale_notes(
    key: str = Query(DEFAULT_KEY_NAME),
    scale: str = Query(DEFAULT_SCALE_NAME),
) -> ScaleNotesResponse:
    """MIDI notes the keyboard highlights for this key + scale."""
    try:
        k = get_key(key)
        sc = get_scale(scale)
    except KeyError as e:
        raise HTTPException(status_code=404, detail=str(e.args[0]))

    return ScaleNotesResponse(key=k.name, scale=sc.name, notes=notes_in_scale_for_key(k, sc))
