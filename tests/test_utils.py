import json
from datetime import date

import pytest

from core.utils import export_filename, load_notes_file, parse_notes_payload, safe_filename


def test_export_filename():
    assert export_filename(day=date(2024, 3, 9)) == "melody-sketch-2024-03-09.mid"
    assert export_filename("take:1", date(2024, 3, 9)) == "take_1-2024-03-09.mid"


def test_export_filename_defaults_to_today():
    name = export_filename()
    assert name.startswith("melody-sketch-")
    assert name.endswith(".mid")
    assert len(name) == len("melody-sketch-YYYY-MM-DD.mid")


def test_safe_filename():
    assert safe_filename('a<b>c:d"e/f\\g|h?i*j') == "a_b_c_d_e_f_g_h_i_j"


def test_parse_notes_payload_list_and_object():
    notes = [{"pitch": 60, "startTime": 0, "duration": 100}]
    assert len(parse_notes_payload(notes).notes) == 1
    req = parse_notes_payload({"notes": notes, "bpm": 100})
    assert req.bpm == 100


def test_parse_notes_payload_errors():
    with pytest.raises(ValueError):
        parse_notes_payload("nope")
    with pytest.raises(ValueError):
        parse_notes_payload({"notes": [{"pitch": "x"}]})


def test_load_notes_file(tmp_path):
    p = tmp_path / "take.json"
    p.write_text(json.dumps({"notes": [{"pitch": 62, "startTime": 5, "duration": 50}], "ticksPerQuarterNote": 480}), encoding="utf-8")
    req = load_notes_file(p)
    assert req.notes[0].pitch == 62
    assert req.ticks_per_quarter_note == 480


def test_load_notes_file_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_notes_file(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{oops", encoding="utf-8")
    with pytest.raises(ValueError):
        load_notes_file(bad)
