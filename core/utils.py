"""
通用工具库
功能：导出文件命名，读取 notes JSON 等
"""
# core/utils.py
from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import ValidationError

from core.models import ExportRequest

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def ensure_dir(p: PathLike) -> Path:
    d = Path(p)
    d.mkdir(parents=True, exist_ok=True)
    return d


def safe_filename(name: str) -> str:
    # minimal cross-platform sanitize
    return "".join(c if c not in r'<>:"/\\|?*' else "_" for c in name)


def export_filename(prefix: str = "melody-sketch", day: Optional[date] = None) -> str:
    """
    <prefix>-<YYYY-MM-DD>.mid, date in UTC (same as the browser's toISOString().slice(0, 10)).
    """
    d = day or datetime.now(timezone.utc).date()
    return safe_filename(f"{prefix}-{d.isoformat()}.mid")


def parse_notes_payload(raw: Any) -> ExportRequest:
    """
    Accepts either a bare list of notes or {"notes": [...], "bpm": ..., "ticksPerQuarterNote": ...}.
    Raises ValueError with pydantic's message on shape errors.
    """
    if isinstance(raw, list):
        raw = {"notes": raw}
    if not isinstance(raw, dict):
        raise ValueError("Notes payload must be a JSON list or object")
    try:
        return ExportRequest.model_validate(raw)
    except ValidationError as e:
        raise ValueError(f"Invalid notes payload: {e}") from e


def load_notes_file(path: PathLike) -> ExportRequest:
    p = Path(path)
    if not p.exists() or not p.is_file():
        raise FileNotFoundError(f"notes file not found: {p}")
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {p} ({e})") from e
    req = parse_notes_payload(raw)
    logger.debug("Loaded %d notes from %s", len(req.notes), p)
    return req
