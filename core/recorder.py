"""
Key-down / key-up capture -> MidiNote list (the encoder's input).

Pure Python, no audio dependency. The clock is injectable so recordings can be
replayed deterministically in tests.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, List, Optional

from core.models import DEFAULT_VELOCITY, MidiNote

logger = logging.getLogger(__name__)

MIN_DURATION_MS = 50.0


def _perf_ms() -> float:
    return time.perf_counter() * 1000.0


class NoteRecorder:
    """
    Presses shorter than `min_duration_ms` are treated as accidental taps and dropped.
    Pressing a held pitch again restarts it.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], float]] = None,
        *,
        min_duration_ms: float = MIN_DURATION_MS,
        velocity: int = DEFAULT_VELOCITY,
    ) -> None:
        self._clock = clock or _perf_ms
        self.min_duration_ms = float(min_duration_ms)
        self.velocity = int(velocity)

        self._start: Optional[float] = None
        self._held: Dict[int, float] = {}  # pitch -> offset ms
        self._notes: List[MidiNote] = []

    @property
    def is_recording(self) -> bool:
        return self._start is not None

    @property
    def notes(self) -> List[MidiNote]:
        return list(self._notes)

    def _offset(self) -> float:
        assert self._start is not None
        return self._clock() - self._start

    def start(self) -> None:
        self._notes.clear()
        self._held.clear()
        self._start = self._clock()

    def press(self, pitch: int) -> None:
        if not self.is_recording:
            return
        self._held[int(pitch)] = self._offset()

    def release(self, pitch: int) -> Optional[MidiNote]:
        if not self.is_recording or int(pitch) not in self._held:
            return None
        started = self._held.pop(int(pitch))
        return self._close(int(pitch), started, self._offset())

    def _close(self, pitch: int, started: float, now: float) -> Optional[MidiNote]:
        duration = now - started
        if duration <= self.min_duration_ms:
            logger.debug("Dropped tap on %d (%.1f ms)", pitch, duration)
            return None
        n = MidiNote(pitch=pitch, start_time=started, duration=duration, velocity=self.velocity)
        self._notes.append(n)
        self._notes.sort(key=lambda x: x.start_time)
        return n

    def stop(self) -> List[MidiNote]:
        """Stop and close every key still held at this instant."""
        if self.is_recording:
            now = self._offset()
            for pitch, started in list(self._held.items()):
                self._close(pitch, started, now)
        self._held.clear()
        self._start = None
        return self.notes

    def clear(self) -> None:
        self._notes.clear()
        self._held.clear()
