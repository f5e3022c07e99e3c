"""Timeline builder — the only way composers add content to a composition.

``TimelineBuilder`` accumulates ``TimedEvent`` objects through a small set
of emission primitives (notes, program changes, tempo, time signature,
end-of-track).  Each primitive produces structurally valid MIDI bytes.

Numeric inputs coming from generative code routinely drift out of range
(``velocity * intensity`` above 127, a negative jitter on a start tick).
The primitives clamp such values deterministically instead of rejecting
them, log the adjustment at DEBUG, and count it in ``clamp_count``.
Clamping never consumes randomness, so a fixed seed always yields the same
timeline.

Structural misuse is not clamped: emitting after end-of-track, or closing
the track twice, raises ``InternalConsistencyError``.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from stori_arranger.core import events as ev
from stori_arranger.core.events import TICKS_PER_BEAT, TimedEvent
from stori_arranger.core.smf import serialize
from stori_arranger.errors import InternalConsistencyError

logger = logging.getLogger(__name__)

_MICROSECONDS_PER_MINUTE = 60_000_000
_MAX_24_BIT = 0xFFFFFF
# Lowest bpm whose microseconds-per-beat still fits in three bytes.
MIN_BPM = 4.0
MAX_BPM = float(_MICROSECONDS_PER_MINUTE)


@dataclass(frozen=True)
class TickClock:
    """Maps musical positions (bar, beat) to absolute ticks.

    Attributes:
        ticks_per_beat: Fixed timeline resolution.
        beats_per_bar: Meter numerator (4 for 4/4, 3 for 3/4 waltz).
    """

    ticks_per_beat: int = TICKS_PER_BEAT
    beats_per_bar: int = 4

    def __post_init__(self) -> None:
        if self.ticks_per_beat <= 0:
            raise ValueError(f"ticks_per_beat must be > 0, got {self.ticks_per_beat}")
        if self.beats_per_bar <= 0:
            raise ValueError(f"beats_per_bar must be > 0, got {self.beats_per_bar}")

    @property
    def ticks_per_bar(self) -> int:
        return self.ticks_per_beat * self.beats_per_bar

    def bar_start(self, bar: int) -> int:
        return bar * self.ticks_per_bar

    def tick_at(self, bar: int, beat: float = 0.0) -> int:
        """Absolute tick of *beat* (0-based, may be fractional) within *bar*."""
        return self.bar_start(bar) + int(round(beat * self.ticks_per_beat))

    def beats(self, count: float) -> int:
        """Length of *count* beats in ticks."""
        return int(round(count * self.ticks_per_beat))


def _clamp(value: int, lo: int, hi: int | None) -> int:
    if value < lo:
        return lo
    if hi is not None and value > hi:
        return hi
    return value


class TimelineBuilder:
    """Accumulates the events of one composition.

    Single-threaded and synchronous: one builder per composition, never
    shared across compositions or threads.
    """

    def __init__(self, ticks_per_beat: int = TICKS_PER_BEAT) -> None:
        self.ticks_per_beat = ticks_per_beat
        self._events: list[TimedEvent] = []
        self._end_tick: int | None = None
        self.clamp_count = 0

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def events(self) -> tuple[TimedEvent, ...]:
        """Snapshot of accumulated events in insertion order."""
        return tuple(self._events)

    @property
    def finished(self) -> bool:
        return self._end_tick is not None

    @property
    def end_tick(self) -> int | None:
        return self._end_tick

    @property
    def last_tick(self) -> int:
        """Latest tick of any accumulated event (0 when empty)."""
        return max((e.tick for e in self._events), default=0)

    def __len__(self) -> int:
        return len(self._events)

    def _require_open(self, primitive: str) -> None:
        if self._end_tick is not None:
            raise InternalConsistencyError(
                f"{primitive} called after end-of-track at tick {self._end_tick}"
            )

    def _fit(self, name: str, value: int, lo: int, hi: int | None = None) -> int:
        value = int(value)
        fitted = _clamp(value, lo, hi)
        if fitted != value:
            self.clamp_count += 1
            logger.debug("⚠️ Clamped %s %d → %d", name, value, fitted)
        return fitted

    # ------------------------------------------------------------------
    # Emission primitives
    # ------------------------------------------------------------------

    def emit_note(
        self,
        channel: int,
        pitch: int,
        velocity: int,
        start_tick: int,
        duration_ticks: int,
    ) -> None:
        """Append a note-on at *start_tick* and its note-off *duration_ticks* later.

        Channel is clamped to 0..15, pitch to 0..127, velocity to 1..127
        (a zero-velocity note-on would read as a note-off), start tick to
        >= 0 and duration to >= 1 tick.
        """
        self._require_open("emit_note")
        channel = self._fit("channel", channel, 0, 15)
        pitch = self._fit("pitch", pitch, 0, 127)
        velocity = self._fit("velocity", velocity, 1, 127)
        start_tick = self._fit("start_tick", start_tick, 0)
        duration_ticks = self._fit("duration", duration_ticks, 1)

        self._events.append(ev.note_on(start_tick, channel, pitch, velocity))
        self._events.append(ev.note_off(start_tick + duration_ticks, channel, pitch))

    def emit_program_change(self, channel: int, program: int, tick: int = 0) -> None:
        """Select instrument *program* (0..127) on *channel* at *tick*."""
        self._require_open("emit_program_change")
        channel = self._fit("channel", channel, 0, 15)
        program = self._fit("program", program, 0, 127)
        tick = self._fit("tick", tick, 0)
        self._events.append(ev.program_change(tick, channel, program))

    def emit_tempo(self, bpm: float, tick: int = 0) -> int:
        """Append a Set Tempo meta event and return its microseconds per beat.

        The payload is ``60_000_000 / bpm`` as a 3-byte big-endian integer.
        bpm is clamped into ``[MIN_BPM, MAX_BPM]`` so that value is at least
        1 and fits 24 bits.

        Raises:
            ValueError: *bpm* is NaN or infinite.
        """
        self._require_open("emit_tempo")
        if not math.isfinite(bpm):
            raise ValueError(f"bpm must be finite, got {bpm}")
        if bpm < MIN_BPM or bpm > MAX_BPM:
            fitted = min(max(float(bpm), MIN_BPM), MAX_BPM)
            self.clamp_count += 1
            logger.debug("⚠️ Clamped bpm %s → %s", bpm, fitted)
            bpm = fitted
        tick = self._fit("tick", tick, 0)

        uspb = int(_MICROSECONDS_PER_MINUTE / bpm)
        if not 0 < uspb <= _MAX_24_BIT:
            raise InternalConsistencyError(f"tempo {uspb} µs/beat does not fit 24 bits")
        self._events.append(ev.meta_event(tick, ev.META_TEMPO, uspb.to_bytes(3, "big")))
        return uspb

    def emit_time_signature(
        self,
        numerator: int,
        denominator_pow2: int,
        tick: int = 0,
        clocks_per_click: int = 24,
        thirty_seconds_per_quarter: int = 8,
    ) -> None:
        """Append a Time Signature meta event ``FF 58 04 nn dd cc bb``.

        *denominator_pow2* is the exponent: 2 means a quarter-note beat.
        """
        self._require_open("emit_time_signature")
        numerator = self._fit("numerator", numerator, 1, 255)
        denominator_pow2 = self._fit("denominator_pow2", denominator_pow2, 0, 7)
        clocks_per_click = self._fit("clocks_per_click", clocks_per_click, 1, 255)
        thirty_seconds_per_quarter = self._fit(
            "thirty_seconds_per_quarter", thirty_seconds_per_quarter, 1, 255
        )
        tick = self._fit("tick", tick, 0)
        data = bytes([numerator, denominator_pow2, clocks_per_click, thirty_seconds_per_quarter])
        self._events.append(ev.meta_event(tick, ev.META_TIME_SIGNATURE, data))

    def emit_end_of_track(self, tick: int) -> None:
        """Close the track at *tick*.  Must be called exactly once, last.

        Raises:
            InternalConsistencyError: the track is already closed, or
                *tick* is negative.
        """
        self._require_open("emit_end_of_track")
        if tick < 0:
            raise InternalConsistencyError(f"end-of-track tick must be >= 0, got {tick}")
        self._events.append(ev.end_of_track(int(tick)))
        self._end_tick = int(tick)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def to_bytes(self) -> bytes:
        """Serialize the finished timeline into Standard MIDI File bytes.

        Raises:
            InternalConsistencyError: end-of-track was never emitted, or the
                serializer rejects the event set.
        """
        if not self.finished:
            raise InternalConsistencyError("timeline serialized before end-of-track")
        if self.clamp_count:
            logger.debug("⚠️ %d value(s) clamped while building timeline", self.clamp_count)
        return serialize(self._events, ticks_per_beat=self.ticks_per_beat)
