from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx
from pydantic import ValidationError

from core.models import MidiNote, QuantizeResponse, ScaleNotesResponse


# -----------------------------
# Exceptions (Business-level)
# -----------------------------
class MelodySketchClientError(Exception):
    """Base exception for SDK client."""


class NetworkError(MelodySketchClientError):
    """Connection/timeout/DNS issues."""


class HTTPError(MelodySketchClientError):
    """Non-2xx response from server."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"HTTP {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class ContractError(MelodySketchClientError):
    """Response doesn't match the expected shape."""


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content: bytes

    def save(self, out_dir: Path, *, overwrite: bool = False) -> Path:
        dest = Path(out_dir) / self.filename
        if dest.exists() and not overwrite:
            raise ValueError(f"dest_path exists (overwrite=False): {dest}")
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(self.content)
        return dest


_FILENAME_RE = re.compile(r'filename="?([^";]+)"?')


def _normalize_base_url(base_url: str) -> str:
    base = (base_url or "").strip()
    if not base:
        base = "http://127.0.0.1:8000"
    return base.rstrip("/")


def _notes_json(notes: Sequence[MidiNote]) -> List[Dict[str, Any]]:
    return [n.model_dump(by_alias=True, exclude_none=True) for n in notes]


class MelodySketchClient:
    """
    API client:
    - POST /export/midi
    - GET  /api/v1/health
    - GET  /api/v1/scales/notes?key=..&scale=..
    - POST /api/v1/notes/quantize
    """

    def __init__(
        self,
        *,
        base_url: str = "http://127.0.0.1:8000",
        timeout_s: float = 30.0,
        http: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = _normalize_base_url(base_url)
        self._owns_http = http is None
        self.http = http or httpx.Client(timeout=httpx.Timeout(timeout_s))

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            r = self.http.request(method, url, **kwargs)
        except (httpx.TimeoutException, httpx.NetworkError, httpx.ConnectError) as e:
            raise NetworkError(str(e)) from e

        if r.status_code != 200:
            raise HTTPError(r.status_code, r.text)
        return r

    @staticmethod
    def _json(r: httpx.Response, what: str) -> Any:
        try:
            return r.json()
        except ValueError as e:
            raise ContractError(f"Invalid JSON in {what} response: {e}") from e

    # --------- endpoints ---------
    def export_midi(
        self,
        notes: Sequence[MidiNote],
        *,
        bpm: Optional[float] = None,
        ticks_per_quarter_note: Optional[int] = None,
    ) -> ExportResult:
        payload: Dict[str, Any] = {"notes": _notes_json(notes)}
        if bpm is not None:
            payload["bpm"] = bpm
        if ticks_per_quarter_note is not None:
            payload["ticksPerQuarterNote"] = ticks_per_quarter_note

        r = self._request("POST", "/export/midi", json=payload)

        if not r.content.startswith(b"MThd"):
            raise ContractError("/export/midi did not return a Standard MIDI File")

        m = _FILENAME_RE.search(r.headers.get("content-disposition", ""))
        filename = m.group(1) if m else "melody-sketch.mid"
        return ExportResult(filename=filename, content=r.content)

    def get_health(self) -> Dict[str, Any]:
        r = self._request("GET", "/api/v1/health")
        data = self._json(r, "/health")
        if not isinstance(data, dict) or data.get("ok") is not True:
            raise ContractError(f"/health response violates contract: {data!r}")
        return data

    def notes_in_scale(self, key: str, scale: str) -> ScaleNotesResponse:
        r = self._request("GET", "/api/v1/scales/notes", params={"key": key, "scale": scale})
        data = self._json(r, "/scales/notes")
        try:
            return ScaleNotesResponse.model_validate(data)
        except ValidationError as e:
            raise ContractError(f"/scales/notes response violates contract: {e}") from e

    def quantize(
        self,
        notes: Sequence[MidiNote],
        *,
        bpm: float,
        resolution: int = 16,
        indices: Optional[Sequence[int]] = None,
    ) -> List[MidiNote]:
        payload: Dict[str, Any] = {"notes": _notes_json(notes), "bpm": bpm, "resolution": resolution}
        if indices is not None:
            payload["indices"] = list(indices)

        r = self._request("POST", "/api/v1/notes/quantize", json=payload)
        data = self._json(r, "/notes/quantize")
        try:
            return QuantizeResponse.model_validate(data).notes
        except ValidationError as e:
            raise ContractError(f"/notes/quantize response violates contract: {e}") from e
