"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import random
from typing import Mapping

import pytest

from stori_arranger.core.arrangement import DEFAULT_POLICY, PlanPolicy
from stori_arranger.services.composer import BarContext
from stori_arranger.services.registry import GenreRegistry, default_registry


class StubComposer:
    """Minimal composer: one quarter note on the downbeat of every bar."""

    name = "stub"

    def __init__(
        self,
        tempo_bpm: int = 120,
        beats_per_bar: int = 4,
        policy: PlanPolicy = DEFAULT_POLICY,
        ring_out_ticks: int = 0,
    ) -> None:
        self.tempo_bpm = tempo_bpm
        self.beats_per_bar = beats_per_bar
        self.policy = policy
        self.ring_out_ticks = ring_out_ticks
        self.seen: list[BarContext] = []

    def program_assignments(self) -> Mapping[int, int]:
        return {9: 0, 0: 33}

    def plan_policy(self) -> PlanPolicy:
        return self.policy

    def emit_bar(self, ctx: BarContext) -> None:
        self.seen.append(ctx)
        length = ctx.clock.ticks_per_beat
        if ctx.is_last_bar_of_section and self.ring_out_ticks:
            length = ctx.clock.ticks_per_bar + self.ring_out_ticks
        ctx.builder.emit_note(0, 48, int(90 * ctx.intensity), ctx.bar_start, length)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def stub_composer() -> StubComposer:
    return StubComposer()


@pytest.fixture
def make_stub() -> type[StubComposer]:
    """The stub class itself, for tests that need custom tempo, meter or policy."""
    return StubComposer


@pytest.fixture
def registry() -> GenreRegistry:
    return default_registry()
