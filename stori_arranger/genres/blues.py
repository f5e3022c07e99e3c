"""Blues — 12-bar form, walking bass, shuffle drums, call-and-response licks."""
from __future__ import annotations

import random
from typing import Mapping

from stori_arranger.core.arrangement import PlannedSection, PlanPolicy, SectionKind
from stori_arranger.genres import drums
from stori_arranger.services.composer import BarContext

BASS, COMP, GUITAR = 0, 1, 2

FORM = (0, 0, 0, 0, 5, 5, 0, 0, 7, 5, 0, 0)
_KEYS = (0, 2, 3, 5, 7, 10)  # C, D, Eb, F, G, Bb
_LEAD_GUITARS = (27, 28, 29, 30)
_BLUES_SCALE = (0, 3, 5, 6, 7, 10)
_WALKS = ((0, 2, 4, 3), (0, -2, 7, 3), (0, 4, 7, 9), (0, 1, 2, 3))
_VOICINGS = ((0, 4, 7), (0, 4, 7, 10), (4, 7, 10, 14), (0, 4, 10))
_LICKS = ((0, 1, 2, 4), (4, 3, 1, 0), (0, 2, 0, 4), (2, 4, 2, 1))


class BluesComposer:
    name = "blues"
    beats_per_bar = 4

    def __init__(self, rng: random.Random) -> None:
        self.root = rng.choice(_KEYS)
        self.tempo_bpm = 100 + rng.randint(-12, 12)
        self.lead_program = rng.choice(_LEAD_GUITARS)
        self.swing = 0.6 + rng.random() * 0.3

    def program_assignments(self) -> Mapping[int, int]:
        return {BASS: 32, COMP: 26, GUITAR: self.lead_program, drums.CHANNEL: 0}

    def plan_policy(self) -> PlanPolicy:
        return PlanPolicy(
            single_max_bars=12,
            single_name="12-Bar Blues",
            split_max_bars=12,
            intro_bars=4,
            main=(PlannedSection("Verse 1", SectionKind.VERSE, 12),),
            specials=(
                PlannedSection("Solo Chorus", SectionKind.SOLO, 12, min_remaining=12, repeat=True),
            ),
            final_chorus_min_bars=None,
        )

    def emit_bar(self, ctx: BarContext) -> None:
        kind = ctx.section.kind
        level = ctx.intensity

        drums.shuffle(ctx, min(level, 1.0), self.swing)
        if kind is SectionKind.INTRO and ctx.bar_in_section == 0:
            return
        self._walk(ctx)
        if kind is not SectionKind.INTRO or ctx.bar_in_section >= 2:
            self._comp(ctx, level * (0.6 if kind is SectionKind.SOLO else 0.8))
        if kind is SectionKind.SOLO:
            self._lick(ctx)
        if kind is SectionKind.OUTRO and ctx.is_last_bar_of_section:
            self._ending(ctx)

    def _degree(self, bar: int) -> int:
        return FORM[bar % len(FORM)]

    def _walk(self, ctx: BarContext) -> None:
        root = 36 + self.root + self._degree(ctx.absolute_bar)
        walk = ctx.rng.choice(_WALKS)
        for beat, offset in enumerate(walk):
            tick = ctx.beat(beat)
            if beat % 2 == 1 and ctx.rng.random() > 0.7:
                tick += ctx.rng.randint(-30, 30)
            velocity = 75 + ctx.rng.randint(-10, 15)
            ctx.builder.emit_note(BASS, root + offset, velocity, tick, ctx.clock.ticks_per_beat // 2)

    def _comp(self, ctx: BarContext, level: float) -> None:
        root = 60 + self.root + self._degree(ctx.absolute_bar)
        voicing = ctx.rng.choice(_VOICINGS)
        hits = ctx.rng.choice(((0, 2), (1, 3), (0.5, 2.5), (0, 1, 2, 3)))
        for beat in hits:
            for interval in voicing:
                velocity = int((60 + ctx.rng.randint(-10, 15)) * level)
                duration = ctx.clock.ticks_per_beat // 4 + ctx.rng.randint(-50, 50)
                ctx.builder.emit_note(COMP, root + interval, max(30, velocity), ctx.beat(beat), duration)

    def _lick(self, ctx: BarContext) -> None:
        scale = [72 + self.root + step for step in _BLUES_SCALE]
        beat = ctx.clock.ticks_per_beat
        for i, degree in enumerate(ctx.rng.choice(_LICKS)):
            tick = ctx.beat(i)
            if i % 2 == 1:
                tick += int(beat * self.swing) - beat // 2
            velocity = 70 + ctx.rng.randint(-10, 20)
            pitch = scale[degree % len(scale)]
            ctx.builder.emit_note(GUITAR, pitch, velocity, tick, beat // 2)
            if ctx.rng.random() > 0.6:
                bend = pitch + ctx.rng.choice((1, 2))
                ctx.builder.emit_note(GUITAR, bend, velocity - 20, tick + beat // 4, beat // 8)

    def _ending(self, ctx: BarContext) -> None:
        for pitch in (36, 48, 60, 64, 67):
            channel = BASS if pitch < 48 else COMP
            ctx.builder.emit_note(channel, pitch + self.root, 90 + ctx.rng.randint(-10, 20), ctx.bar_start, ctx.clock.ticks_per_bar)
        drums.hit(ctx, drums.CRASH, ctx.bar_start, 100 + ctx.rng.randint(-10, 10), ctx.clock.ticks_per_beat * 2)


def create(rng: random.Random) -> BluesComposer:
    return BluesComposer(rng)
