"""Rock — power-chord rhythm guitar, root bass, backbeat drums.

Randomized per composition: subgenre (classic / hard / punk), key,
guitar/bass/keyboard programs, a four-chord progression, tempo offset,
and whether the long form carries a solo or a bridge.
"""
from __future__ import annotations

import random
from typing import Mapping

from stori_arranger.core.arrangement import PlannedSection, PlanPolicy, SectionKind
from stori_arranger.genres import drums
from stori_arranger.services.composer import BarContext

BASS, RHYTHM, LEAD, KEYS = 0, 1, 2, 3

_KEYS = (0, 2, 4, 5, 7, 9, 10)  # C, D, E, F, G, A, Bb
_LEAD_GUITARS = (29, 30, 31, 26, 27)
_RHYTHM_GUITARS = (25, 26, 27, 28, 29, 30)
_BASSES = (33, 34, 35, 36)
_KEYBOARDS = (0, 1, 2, 4, 16, 17, 19)

_PROGRESSIONS: dict[str, tuple[tuple[int, ...], ...]] = {
    "classic": ((0, 5, 3, 7), (0, 10, 5, 7), (0, 7, 5, 0)),
    "hard": ((0, 0, 5, 5), (0, 10, 0, 10), (0, 5, 10, 5)),
    "punk": ((0, 5, 7, 5), (0, 0, 5, 7), (5, 5, 0, 7)),
}
_TEMPO_OFFSETS = {"classic": (-20, 20), "hard": (-10, 30), "punk": (40, 80)}
_PENTATONIC = (0, 3, 5, 7, 10)


class RockComposer:
    name = "rock"
    beats_per_bar = 4

    def __init__(self, rng: random.Random) -> None:
        self.subgenre = rng.choice(tuple(_PROGRESSIONS))
        self.root = rng.choice(_KEYS)
        lo, hi = _TEMPO_OFFSETS[self.subgenre]
        self.tempo_bpm = 120 + rng.randint(lo, hi)
        self.programs = {
            BASS: rng.choice(_BASSES),
            RHYTHM: rng.choice(_RHYTHM_GUITARS),
            LEAD: rng.choice(_LEAD_GUITARS),
            KEYS: rng.choice(_KEYBOARDS),
            drums.CHANNEL: 0,
        }
        self.progression = rng.choice(_PROGRESSIONS[self.subgenre])
        self.drive = 0.6 + rng.random() * 0.4
        self.has_solo = rng.random() > (0.7 if self.subgenre == "punk" else 0.4)
        self.has_keys = rng.random() > 0.6

    def program_assignments(self) -> Mapping[int, int]:
        return self.programs

    def plan_policy(self) -> PlanPolicy:
        short = self.subgenre == "punk"
        return PlanPolicy(
            single_name="Riff",
            intro_bars=4 if self.has_keys else 2,
            main=(
                PlannedSection("Verse 1", SectionKind.VERSE, 4 if short else 8),
                PlannedSection("Chorus 1", SectionKind.CHORUS, 4 if short else 8, min_remaining=8),
            ),
            specials=(
                PlannedSection("Solo", SectionKind.SOLO, 4, min_remaining=12, enabled=self.has_solo),
                PlannedSection(
                    "Bridge", SectionKind.BRIDGE, 4, min_remaining=8, enabled=not self.has_solo
                ),
            ),
        )

    # ------------------------------------------------------------------

    def _chord_root(self, base: int, bar: int) -> int:
        return base + self.root + self.progression[bar % len(self.progression)]

    def emit_bar(self, ctx: BarContext) -> None:
        kind = ctx.section.kind
        level = ctx.intensity
        rng = ctx.rng

        if kind is SectionKind.INTRO and ctx.bar_in_section == 0:
            drums.backbeat(ctx, level * 0.7, hat_steps=8)
            if rng.random() > 0.5:
                self._rhythm(ctx, level * 0.6)
            return

        drums.backbeat(ctx, level, hat_steps=16 if self.subgenre == "punk" else 8)
        self._rhythm(ctx, level * (0.8 if kind is SectionKind.SOLO else 1.0))
        self._bass(ctx, level)
        if self.has_keys and kind in (SectionKind.CHORUS, SectionKind.BRIDGE):
            self._keys(ctx, level * 0.8)
        if kind is SectionKind.SOLO or (kind is SectionKind.CHORUS and rng.random() > 0.5):
            self._lead(ctx, level)
        if kind is SectionKind.OUTRO and ctx.is_last_bar_of_section:
            self._ending(ctx)

    def _rhythm(self, ctx: BarContext, level: float) -> None:
        root = self._chord_root(40, ctx.absolute_bar)
        steps = 8 if self.subgenre == "punk" else 4
        step = ctx.clock.ticks_per_bar // steps
        for i in range(steps):
            for pitch in (root, root + 7):
                velocity = int((80 + ctx.rng.randint(-10, 10)) * level * self.drive)
                ctx.builder.emit_note(RHYTHM, pitch, max(45, velocity), ctx.bar_start + i * step, step - 20)

    def _bass(self, ctx: BarContext, level: float) -> None:
        root = self._chord_root(28, ctx.absolute_bar)
        beat = ctx.clock.ticks_per_beat
        ctx.builder.emit_note(BASS, root, int((90 + ctx.rng.randint(-10, 10)) * level), ctx.beat(0), beat)
        ctx.builder.emit_note(BASS, root, int((85 + ctx.rng.randint(-10, 10)) * level), ctx.beat(2), beat)
        if ctx.rng.random() > 0.6:
            walk = root + ctx.rng.choice((2, 5))
            ctx.builder.emit_note(BASS, walk, int(70 * level), ctx.beat(1.5), beat // 2)

    def _lead(self, ctx: BarContext, level: float) -> None:
        scale = [60 + 12 + self.root + step for step in _PENTATONIC]
        notes = 4 if self.subgenre == "punk" else 8
        step = ctx.clock.ticks_per_bar // notes
        for i in range(notes):
            pitch = scale[ctx.rng.randrange(len(scale))]
            velocity = int((85 + ctx.rng.randint(-15, 15)) * level * self.drive)
            duration = step + ctx.rng.randint(-60, 60)
            ctx.builder.emit_note(LEAD, pitch, max(50, velocity), ctx.bar_start + i * step, duration)

    def _keys(self, ctx: BarContext, level: float) -> None:
        root = self._chord_root(60, ctx.absolute_bar)
        for interval in (0, 4, 7):
            velocity = int((55 + ctx.rng.randint(-10, 10)) * level)
            ctx.builder.emit_note(KEYS, root + interval, max(30, velocity), ctx.bar_start, ctx.clock.ticks_per_bar)

    def _ending(self, ctx: BarContext) -> None:
        root = 28 + self.root
        for pitch in (root, root + 12, root + 19, root + 24):
            channel = BASS if pitch < 36 else RHYTHM
            ctx.builder.emit_note(channel, pitch, 100 + ctx.rng.randint(-10, 10), ctx.bar_start, ctx.clock.ticks_per_bar)
        ctx.builder.emit_note(drums.CHANNEL, drums.CRASH, 110, ctx.bar_start, ctx.clock.ticks_per_bar)


def create(rng: random.Random) -> RockComposer:
    return RockComposer(rng)
