# app.py
"""
Melody Sketch backend entry (FastAPI)

- App Factory pattern for testing & packaging
- Lifespan startup: log the encoder defaults in effect
- Dev CORS: allow localhost any port (supports credentials)
- Prod CORS: MUST specify explicit origins (no wildcard with credentials)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import get_settings
from routers.export import router as export_router
from routers.health import router as health_router
from routers.notes import router as notes_router
from routers.scales import router as scales_router

logger = logging.getLogger("melody_sketch")


def _is_dev(app_env: str) -> bool:
    v = (app_env or "").strip().lower()
    return v in {"dev", "development", "local"}


def _parse_origins(raw: Optional[str]) -> list[str]:
    """
    Parse comma-separated origins string into list.
    Example: "https://a.com,https://b.com"
    """
    if not raw:
        return []
    parts = [p.strip() for p in raw.split(",")]
    return [p for p in parts if p]


@asynccontextmanager
async def lifespan(_: FastAPI):
    s = get_settings()
    logger.info(
        "Encoder defaults: ppq=%s bpm=%s invalid_notes=%s",
        s.ticks_per_quarter_note,
        s.default_bpm,
        s.invalid_note_policy,
    )
    yield
    logger.info("Service shutting down...")


def create_app() -> FastAPI:
    # logging once (avoid duplicated handlers in reload/test)
    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )

    s = get_settings()
    app = FastAPI(
        title="Melody Sketch",
        version="0.1.0",
        description="Record -> edit -> export melodies as Standard MIDI Files",
        lifespan=lifespan,
    )

    # expose settings for debugging
    app.state.settings = s

    # ---- CORS ----
    # Dev: allow localhost any port, supports credentials
    # Prod: must specify explicit origins (CORS_ALLOW_ORIGINS)
    if _is_dev(s.app_env):
        allow_origins: list[str] = []
        allow_origin_regex = r"http://(?:localhost|127\.0\.0\.1)(?::\d+)?"
        allow_credentials = True
    else:
        allow_origins = _parse_origins(s.cors_allow_origins)
        allow_origin_regex = None
        # If you don't specify explicit origins, we DISABLE credentials (safe fallback)
        allow_credentials = bool(allow_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_origin_regex=allow_origin_regex,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # ---- Routers ----
    app.include_router(health_router)
    app.include_router(export_router)
    app.include_router(scales_router)
    app.include_router(notes_router)

    @app.get("/", include_in_schema=False)
    def root():
        return JSONResponse(
            {
                "service": "Melody Sketch",
                "status": "ok",
                "docs_url": "/docs",
                "export_url": "/export/midi",
            }
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    _s = get_settings()
    uvicorn.run("app:app", host=_s.host, port=_s.port, reload=True)
