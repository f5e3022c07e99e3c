"""Genre composer contract and the composition pipeline.

A genre plugs into the shared core by satisfying ``GenreComposer``, a
capability protocol, not a base class.  ``compose`` owns the pipeline and
calls the genre only where musical content is needed:

    bars_from_duration → build_plan(policy) → tempo / meter / programs
    → emit_bar(ctx) for every bar → end-of-track → serialize

Genres never build events directly; they receive a ``BarContext`` whose
``builder`` exposes the timeline primitives.

Boundary rules:
  - One ``TimelineBuilder`` and one ``random.Random`` per composition.
  - No module-level random state.  The generator is injected by the caller.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Mapping, Protocol, runtime_checkable

from stori_arranger.core.arrangement import (
    CompositionPlan,
    PlanPolicy,
    Section,
    bars_from_duration,
    build_plan,
    section_intensity,
)
from stori_arranger.core.events import TICKS_PER_BEAT
from stori_arranger.core.timeline import TickClock, TimelineBuilder

logger = logging.getLogger(__name__)

# Time signature denominators written as powers of two (2 → quarter note).
_QUARTER_NOTE_POW2 = 2


@dataclass(frozen=True)
class BarContext:
    """Everything a genre needs to fill one bar.

    Attributes:
        builder: Timeline emission primitives for this composition.
        clock: Bar/beat → tick mapping.
        section: Section the bar belongs to.
        bar_in_section: 0-based position inside the section.
        absolute_bar: 0-based position in the composition.
        bar_start: Absolute tick of the bar's downbeat.
        intensity: ``section_intensity(section, bar_in_section)``.
        rng: The composition's private generator.
    """

    builder: TimelineBuilder
    clock: TickClock
    section: Section
    bar_in_section: int
    absolute_bar: int
    bar_start: int
    intensity: float
    rng: random.Random

    @property
    def is_last_bar_of_section(self) -> bool:
        return self.bar_in_section == self.section.length_bars - 1

    def beat(self, beat: float) -> int:
        """Absolute tick of *beat* within this bar."""
        return self.bar_start + self.clock.beats(beat)


@runtime_checkable
class GenreComposer(Protocol):
    """Capability interface every genre implementation satisfies.

    Instances are created per composition by a registry factory that
    receives the composition's generator; any randomized choice (key,
    instruments, tempo variation, gated sections) is drawn from it.
    """

    @property
    def name(self) -> str:
        """Registry id of the genre (lowercase)."""
        ...

    @property
    def tempo_bpm(self) -> int:
        """Fixed tempo for the whole composition."""
        ...

    @property
    def beats_per_bar(self) -> int:
        """Meter numerator (quarter-note beats per bar)."""
        ...

    def program_assignments(self) -> Mapping[int, int]:
        """Channel → General MIDI program, emitted at tick 0."""
        ...

    def plan_policy(self) -> PlanPolicy:
        """Structural regime, with gated sections already decided."""
        ...

    def emit_bar(self, ctx: BarContext) -> None:
        """Emit the notes of one bar through ``ctx.builder``."""
        ...


@dataclass(frozen=True)
class Composition:
    """A finished composition: its plan, timeline and tempo map."""

    genre: str
    tempo_bpm: int
    clock: TickClock
    plan: CompositionPlan
    builder: TimelineBuilder

    @property
    def total_bars(self) -> int:
        return self.plan.total_bars

    @property
    def end_tick(self) -> int:
        return self.builder.end_tick or 0

    def to_bytes(self) -> bytes:
        return self.builder.to_bytes()


def compose(
    composer: GenreComposer,
    duration_seconds: float,
    rng: random.Random,
    ticks_per_beat: int = TICKS_PER_BEAT,
) -> Composition:
    """Build a complete timeline for *composer* covering *duration_seconds*.

    Emits tempo, time signature and program changes at tick 0, calls
    ``composer.emit_bar`` for every bar of the plan in order, then closes
    the track at ``total_bars * ticks_per_bar``, or at the last note-off
    when a final note rings past the last bar.

    Raises:
        InternalConsistencyError: the plan or timeline is inconsistent.
        ValueError: *duration_seconds* is not positive.
    """
    clock = TickClock(ticks_per_beat=ticks_per_beat, beats_per_bar=composer.beats_per_bar)
    total_bars = bars_from_duration(duration_seconds, composer.tempo_bpm, clock.beats_per_bar)
    plan = build_plan(total_bars, composer.plan_policy())

    builder = TimelineBuilder(ticks_per_beat=ticks_per_beat)
    builder.emit_tempo(composer.tempo_bpm)
    builder.emit_time_signature(clock.beats_per_bar, _QUARTER_NOTE_POW2)
    for channel, program in sorted(composer.program_assignments().items()):
        builder.emit_program_change(channel, program, 0)

    for section, bar_in_section, absolute_bar in plan.bars():
        ctx = BarContext(
            builder=builder,
            clock=clock,
            section=section,
            bar_in_section=bar_in_section,
            absolute_bar=absolute_bar,
            bar_start=clock.bar_start(absolute_bar),
            intensity=section_intensity(section, bar_in_section),
            rng=rng,
        )
        composer.emit_bar(ctx)

    planned_end = total_bars * clock.ticks_per_bar
    end_tick = max(planned_end, builder.last_tick)
    if end_tick > planned_end:
        logger.debug("Ring-out extends track end from %d to %d", planned_end, end_tick)
    builder.emit_end_of_track(end_tick)
    logger.info(
        "✅ Composed %s: %d bars, %d sections, %d events at %d BPM",
        composer.name,
        total_bars,
        len(plan),
        len(builder),
        composer.tempo_bpm,
    )
    return Composition(
        genre=composer.name,
        tempo_bpm=composer.tempo_bpm,
        clock=clock,
        plan=plan,
        builder=builder,
    )
