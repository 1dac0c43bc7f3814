# core/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field, AliasChoices
from pydantic_settings import BaseSettings, SettingsConfigDict


# Project root: .../melody-sketch
BASE_DIR = Path(__file__).resolve().parents[1]

INVALID_NOTE_POLICIES = ("raise", "skip")
MAX_DIVISION = 0x7FFF


class Settings(BaseSettings):
    """
    Melody Sketch settings.

    Reads from:
    - environment variables
    - .env in project root

    Goals:
    - encoder defaults match the browser sketchpad (96 ppq, 120 bpm)
    - one invalid-note policy shared by API and CLI
    - keep config truly configurable (no silent hard-lock)
    """

    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # ---- Environment / server ----
    app_env: str = Field(default="development", validation_alias="APP_ENV")
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT")
    cors_allow_origins: Optional[str] = Field(default=None, validation_alias="CORS_ALLOW_ORIGINS")

    # ---- Encoder defaults ----
    default_bpm: float = Field(default=120.0, validation_alias="DEFAULT_BPM")

    # Division (support alias PPQ)
    ticks_per_quarter_note: int = Field(
        default=96,
        validation_alias=AliasChoices("TICKS_PER_QUARTER_NOTE", "PPQ"),
    )

    # "raise" rejects the whole export, "skip" drops bad notes with a warning
    invalid_note_policy: str = Field(default="raise", validation_alias="INVALID_NOTE_POLICY")

    # ---- Export ----
    export_filename_prefix: str = Field(default="melody-sketch", validation_alias="EXPORT_FILENAME_PREFIX")
    max_export_notes: int = Field(default=10000, validation_alias="MAX_EXPORT_NOTES")

    def model_post_init(self, __context) -> None:
        # Lightweight clamps, avoid surprising overrides
        if not self.default_bpm or self.default_bpm <= 0:
            self.default_bpm = 120.0

        if self.ticks_per_quarter_note <= 0 or self.ticks_per_quarter_note > MAX_DIVISION:
            self.ticks_per_quarter_note = 96

        policy = (self.invalid_note_policy or "").strip().lower()
        self.invalid_note_policy = policy if policy in INVALID_NOTE_POLICIES else "raise"

        self.export_filename_prefix = (self.export_filename_prefix or "").strip() or "melody-sketch"

        if self.max_export_notes <= 0:
            self.max_export_notes = 10000


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


if __name__ == "__main__":
    # Quick self-check
    s = get_settings()
    print("Settings loaded")
    print(f"BASE_DIR: {BASE_DIR}")
    print(f"env: {s.app_env}")
    print(f"division: {s.ticks_per_quarter_note} ppq | default bpm: {s.default_bpm}")
    print(f"invalid note policy: {s.invalid_note_policy}")
    print(f"export: {s.export_filename_prefix}-<date>.mid (max {s.max_export_notes} notes)")
