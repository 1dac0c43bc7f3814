"""
健康检查路由
功能：用于云服务监控存活状态
"""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter

from core.config import get_settings

router = APIRouter(prefix="/api/v1", tags=["Health"])


@router.get("/health")
def health() -> Dict[str, Any]:
    """
    健康检查（给前端 / 部署平台 / 监控用）
    - always returns ok=True if API is alive
    - extra diagnostics: encoder defaults the export endpoint will use
    """
    s = get_settings()

    return {
        "ok": True,
        "env": s.app_env,
        "encoder": {
            "ticks_per_quarter_note": s.ticks_per_quarter_note,
            "default_bpm": s.default_bpm,
            "invalid_note_policy": s.invalid_note_policy,
            "max_export_notes": s.max_export_notes,
        },
    }
