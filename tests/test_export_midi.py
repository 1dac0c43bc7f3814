"""
Tests for POST /export/midi endpoint.
"""
from __future__ import annotations

import re

import pytest
from fastapi.testclient import TestClient

from app import create_app
from core.config import get_settings
from core.midi_encoder import encode_midi
from core.models import MidiNote


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    get_settings.cache_clear()
    app = create_app()
    with TestClient(app) as c:
        yield c
    get_settings.cache_clear()


def _payload(**extra):
    body = {
        "notes": [
            {"pitch": 60, "startTime": 0, "duration": 500, "velocity": 80},
            {"pitch": 64, "startTime": 500, "duration": 500, "id": "n2"},
        ],
    }
    body.update(extra)
    return body


def test_export_midi_minimal(client):
    """POST /export/midi returns the encoder's exact bytes as a download."""
    r = client.post("/export/midi", json=_payload())
    assert r.status_code == 200, r.text
    assert r.headers.get("content-type", "").startswith("audio/midi")

    cd = r.headers.get("content-disposition", "")
    assert "attachment" in cd.lower()
    assert re.search(r'filename="melody-sketch-\d{4}-\d{2}-\d{2}\.mid"', cd), cd

    expected = encode_midi(
        [
            MidiNote(pitch=60, start_time=0, duration=500, velocity=80),
            MidiNote(pitch=64, start_time=500, duration=500),
        ],
        96,
        120,
    )
    assert r.content == expected


def test_export_midi_empty_notes(client):
    """Empty notes is valid (produces minimal MIDI)."""
    r = client.post("/export/midi", json={"notes": []})
    assert r.status_code == 200, r.text
    assert r.content == encode_midi([])


def test_export_midi_bare_list(client):
    r = client.post("/export/midi", json=[{"pitch": 60, "startTime": 0, "duration": 500}])
    assert r.status_code == 200, r.text
    assert r.content[:4] == b"MThd"


def test_export_midi_uses_bpm_and_division(client):
    r = client.post("/export/midi", json=_payload(bpm=90, ticksPerQuarterNote=480))
    assert r.status_code == 200, r.text
    assert r.content[12:14] == b"\x01\xe0"
    notes = [MidiNote.model_validate(n) for n in _payload()["notes"]]
    assert r.content == encode_midi(notes, 480, 90)


def test_export_midi_400_invalid_json(client):
    r = client.post("/export/midi", content=b"{not json", headers={"content-type": "application/json"})
    assert r.status_code == 400, r.text


def test_export_midi_400_missing_note_fields(client):
    """Note missing startTime/duration returns 400."""
    r = client.post("/export/midi", json={"notes": [{"pitch": 60}]})
    assert r.status_code == 400, r.text


def test_export_midi_400_invalid_bpm(client):
    """Invalid bpm (<=0) returns 400."""
    r = client.post("/export/midi", json=_payload(bpm=0))
    assert r.status_code == 400, r.text
    assert "bpm" in r.json()["detail"]


def test_export_midi_400_names_bad_note(client):
    body = _payload()
    body["notes"].append({"pitch": 200, "startTime": 0, "duration": 10})
    r = client.post("/export/midi", json=body)
    assert r.status_code == 400, r.text
    assert "note[2].pitch" in r.json()["detail"]


def test_export_midi_skip_policy(monkeypatch):
    monkeypatch.setenv("INVALID_NOTE_POLICY", "skip")
    get_settings.cache_clear()
    try:
        with TestClient(create_app()) as c:
            body = _payload()
            body["notes"].append({"pitch": 61, "startTime": 100, "duration": 0})
            r = c.post("/export/midi", json=body)
            clean = c.post("/export/midi", json=_payload())
        assert r.status_code == 200, r.text
        assert r.content == clean.content
    finally:
        get_settings.cache_clear()


def test_export_midi_too_many_notes(monkeypatch):
    monkeypatch.setenv("MAX_EXPORT_NOTES", "1")
    get_settings.cache_clear()
    try:
        with TestClient(create_app()) as c:
            r = c.post("/export/midi", json=_payload())
        assert r.status_code == 400, r.text
        assert "Too many notes" in r.json()["detail"]
    finally:
        get_settings.cache_clear()


def test_export_midi_filename_prefix(monkeypatch):
    monkeypatch.setenv("EXPORT_FILENAME_PREFIX", "take")
    get_settings.cache_clear()
    try:
        with TestClient(create_app()) as c:
            r = c.post("/export/midi", json=_payload())
        assert 'filename="take-' in r.headers["content-disposition"]
    finally:
        get_settings.cache_clear()


def test_export_midi_400_tick_overflow(client):
    body = _payload(ticksPerQuarterNote=0x7FFF)
    body["notes"].append({"pitch": 67, "startTime": 0, "duration": 1e308})
    r = client.post("/export/midi", json=body)
    assert r.status_code == 400, r.text
    assert "note[2].duration" in r.json()["detail"]
