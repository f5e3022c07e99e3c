"""Country — strummed acoustic rhythm, root-fifth bass, fiddle or steel fills.

One composition in five is a 3/4 waltz; the meter flows through the
tick clock, so bar lengths and the time-signature event follow it.
"""
from __future__ import annotations

import random
from typing import Mapping

from stori_arranger.core.arrangement import PlannedSection, PlanPolicy, SectionKind
from stori_arranger.genres import drums
from stori_arranger.services.composer import BarContext

BASS, RHYTHM, LEAD = 0, 1, 2

_KEYS = (0, 2, 4, 5, 7, 9)
_LEADS = (110, 25, 27, 105, 22)  # fiddle, steel, clean electric, banjo, harmonica
_RHYTHM_GUITARS = (24, 25, 26)
_BASSES = (32, 33, 43)
_PROGRESSIONS = ((0, 7, 9, 5), (0, 5, 7, 0), (9, 5, 0, 7), (0, 9, 2, 7))
_MAJOR_PENTATONIC = (0, 2, 4, 7, 9)


class CountryComposer:
    name = "country"

    def __init__(self, rng: random.Random) -> None:
        self.root = (rng.choice(_KEYS) + rng.randint(0, 4)) % 12  # capo
        self.tempo_bpm = 120 + rng.randint(-15, 15)
        self.programs = {
            BASS: rng.choice(_BASSES),
            RHYTHM: rng.choice(_RHYTHM_GUITARS),
            LEAD: rng.choice(_LEADS),
            drums.CHANNEL: 0,
        }
        self.waltz = rng.random() > 0.8
        self.progression = rng.choice(_PROGRESSIONS)

    @property
    def beats_per_bar(self) -> int:
        return 3 if self.waltz else 4

    def program_assignments(self) -> Mapping[int, int]:
        return self.programs

    def plan_policy(self) -> PlanPolicy:
        return PlanPolicy(
            single_name="Verse",
            intro_bars=4,
            main=(
                PlannedSection("Verse", SectionKind.VERSE, 8),
                PlannedSection("Chorus", SectionKind.CHORUS, 8, min_remaining=12),
            ),
            specials=(PlannedSection("Solo", SectionKind.SOLO, 8, min_remaining=8),),
            final_chorus_min_bars=None,
        )

    def emit_bar(self, ctx: BarContext) -> None:
        kind = ctx.section.kind
        level = ctx.intensity

        self._strum(ctx, level)
        if kind is SectionKind.INTRO and ctx.bar_in_section == 0:
            return
        self._bass(ctx, level)
        if kind is not SectionKind.INTRO or ctx.bar_in_section >= 2:
            if self.waltz:
                drums.waltz(ctx, level)
            else:
                drums.backbeat(ctx, level * 0.9, hat_steps=8)
        if kind in (SectionKind.SOLO, SectionKind.CHORUS):
            self._fill(ctx, level)
        if kind is SectionKind.OUTRO and ctx.is_last_bar_of_section:
            root = 48 + self.root
            for pitch in (root, root + 4, root + 7, root + 12):
                ctx.builder.emit_note(RHYTHM, pitch, 90, ctx.bar_start, ctx.clock.ticks_per_bar)

    def _chord_root(self, base: int, bar: int) -> int:
        return base + self.root + self.progression[bar % len(self.progression)]

    def _strum(self, ctx: BarContext, level: float) -> None:
        root = self._chord_root(48, ctx.absolute_bar)
        strums = ctx.clock.beats_per_bar * 2
        step = ctx.clock.ticks_per_bar // strums
        for i in range(strums):
            base = 65 if i % 2 == 0 else 45
            velocity = int(base * level) + ctx.rng.randint(-5, 10)
            for n, interval in enumerate((0, 4, 7, 12)):
                ctx.builder.emit_note(RHYTHM, root + interval, velocity, ctx.bar_start + i * step + n * 8, step)

    def _bass(self, ctx: BarContext, level: float) -> None:
        root = self._chord_root(36, ctx.absolute_bar)
        for beat in range(ctx.clock.beats_per_bar):
            pitch = root + 7 if beat % 2 else root
            velocity = int((85 + ctx.rng.randint(-10, 10)) * level)
            ctx.builder.emit_note(BASS, pitch, velocity, ctx.beat(beat), ctx.clock.ticks_per_beat - 40)

    def _fill(self, ctx: BarContext, level: float) -> None:
        scale = [72 + self.root + step for step in _MAJOR_PENTATONIC]
        step = ctx.clock.ticks_per_beat // 2
        for i in range(ctx.clock.beats_per_bar * 2):
            if ctx.rng.random() < 0.3:
                continue
            velocity = int((70 + ctx.rng.randint(-10, 15)) * level)
            ctx.builder.emit_note(LEAD, ctx.rng.choice(scale), velocity, ctx.bar_start + i * step, step)


def create(rng: random.Random) -> CountryComposer:
    return CountryComposer(rng)
