from __future__ import annotations

from core.midi_encoder import encode_midi
from core.recorder import NoteRecorder


class FakeClock:
    def __init__(self, t: float = 1000.0):
        self.t = t

    def __call__(self) -> float:
        return self.t

    def advance(self, ms: float) -> None:
        self.t += ms


def test_press_release_produces_note():
    clock = FakeClock()
    rec = NoteRecorder(clock)
    rec.start()
    clock.advance(100)
    rec.press(60)
    clock.advance(400)
    n = rec.release(60)

    assert n is not None
    assert (n.pitch, n.start_time, n.duration, n.velocity) == (60, 100, 400, 100)
    assert rec.notes == [n]


def test_short_taps_are_dropped():
    clock = FakeClock()
    rec = NoteRecorder(clock)
    rec.start()
    rec.press(60)
    clock.advance(50)
    assert rec.release(60) is None
    rec.press(62)
    clock.advance(51)
    assert rec.release(62) is not None
    assert [n.pitch for n in rec.notes] == [62]


def test_ignored_when_not_recording():
    clock = FakeClock()
    rec = NoteRecorder(clock)
    rec.press(60)
    clock.advance(500)
    assert rec.release(60) is None
    assert rec.notes == []
    assert rec.is_recording is False


def test_release_without_press_is_ignored():
    rec = NoteRecorder(FakeClock())
    rec.start()
    assert rec.release(72) is None


def test_stop_flushes_held_keys_sorted():
    clock = FakeClock()
    rec = NoteRecorder(clock)
    rec.start()
    clock.advance(300)
    rec.press(64)
    clock.advance(100)
    rec.press(60)
    rec.release(60)  # 0 ms, dropped
    rec.press(60)
    clock.advance(200)
    rec.release(64)  # 300 ms
    clock.advance(500)
    notes = rec.stop()  # 60 held for 700 ms

    assert [(n.pitch, n.start_time, n.duration) for n in notes] == [(64, 300, 300), (60, 400, 700)]
    assert rec.is_recording is False


def test_start_clears_previous_take():
    clock = FakeClock()
    rec = NoteRecorder(clock)
    rec.start()
    rec.press(60)
    clock.advance(200)
    rec.stop()
    assert len(rec.notes) == 1

    rec.start()
    assert rec.notes == []


def test_recording_feeds_encoder():
    clock = FakeClock(0)
    rec = NoteRecorder(clock, velocity=80)
    rec.start()
    rec.press(60)
    clock.advance(500)
    rec.release(60)
    data = encode_midi(rec.stop())
    assert data[22:] == b"\x00\x90\x3c\x50" + b"\x60\x80\x3c\x00" + b"\x00\xff\x2f\x00"
