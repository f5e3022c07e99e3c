"""Arrangement framework — bars, section plans and intensity curves.

Every genre composer drives the same three questions through this module:

1. How many bars does a duration need?  (``bars_from_duration``)
2. How are those bars split into named sections?  (``build_plan``)
3. How hard should bar *n* of a section play?  (``section_intensity``)

Plans are produced from a ``PlanPolicy`` — plain data describing the
structural regime — rather than by subclassing.  A composer resolves its
own probabilistic choices (has a solo? has a breakdown?) with its own
seeded generator and hands the outcome to the policy as ``enabled`` flags,
so plan construction itself is pure and deterministic.

Invariant regardless of policy: the sections of a plan start at bar 0, are
contiguous and non-overlapping, each spans at least one bar, and their
lengths sum to exactly ``total_bars``.  ``build_plan`` validates that
before returning and raises ``InternalConsistencyError`` otherwise.
"""
from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field
from typing import Iterator

from stori_arranger.errors import InternalConsistencyError

logger = logging.getLogger(__name__)

INTENSITY_MIN = 0.0
INTENSITY_MAX = 1.5


class SectionKind(str, enum.Enum):
    """Semantic role of a section."""

    INTRO = "intro"
    VERSE = "verse"
    CHORUS = "chorus"
    BRIDGE = "bridge"
    SOLO = "solo"
    OUTRO = "outro"
    PRE_CHORUS = "pre_chorus"
    BREAKDOWN = "breakdown"


@dataclass(frozen=True)
class Section:
    """A named, bar-ranged segment of a composition."""

    name: str
    start_bar: int
    length_bars: int
    kind: SectionKind

    @property
    def end_bar(self) -> int:
        """Exclusive end bar."""
        return self.start_bar + self.length_bars

    def contains(self, bar: int) -> bool:
        return self.start_bar <= bar < self.end_bar


@dataclass(frozen=True)
class CompositionPlan:
    """Ordered sections covering bars ``[0, total_bars)`` exactly once."""

    sections: tuple[Section, ...]

    @property
    def total_bars(self) -> int:
        return sum(s.length_bars for s in self.sections)

    def __iter__(self) -> Iterator[Section]:
        return iter(self.sections)

    def __len__(self) -> int:
        return len(self.sections)

    def section_at(self, bar: int) -> Section:
        """Return the section containing absolute *bar*.

        Raises:
            IndexError: *bar* lies outside the plan.
        """
        for section in self.sections:
            if section.contains(bar):
                return section
        raise IndexError(f"bar {bar} outside plan of {self.total_bars} bars")

    def bars(self) -> Iterator[tuple[Section, int, int]]:
        """Yield ``(section, bar_in_section, absolute_bar)`` in playing order."""
        for section in self.sections:
            for offset in range(section.length_bars):
                yield section, offset, section.start_bar + offset


# ---------------------------------------------------------------------------
# Bars from duration
# ---------------------------------------------------------------------------


def bars_from_duration(duration_seconds: float, bpm: float, beats_per_bar: int = 4) -> int:
    """Return the number of bars needed to cover *duration_seconds*.

    ``bars_per_second = bpm / 60 / beats_per_bar``; the result is
    ``max(1, ceil(duration_seconds * bars_per_second))``.  Always rounds up,
    so a composition is never shorter than requested.

    Raises:
        ValueError: any argument is non-positive or non-finite.
    """
    for label, value in (
        ("duration_seconds", duration_seconds),
        ("bpm", bpm),
        ("beats_per_bar", beats_per_bar),
    ):
        if not math.isfinite(value) or value <= 0:
            raise ValueError(f"{label} must be a positive finite number, got {value}")
    bars_per_second = float(bpm) / 60.0 / float(beats_per_bar)
    return max(1, int(math.ceil(duration_seconds * bars_per_second)))


# ---------------------------------------------------------------------------
# Plan policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PlannedSection:
    """A section slot in the long-form regime.

    The slot is placed when at least ``min_remaining`` bars are still
    unassigned and ``enabled`` is true.  Its length is capped by what is
    left so the trailing section can never go negative.
    """

    name: str
    kind: SectionKind
    length_bars: int
    min_remaining: int = 1
    enabled: bool = True
    repeat: bool = False
    """Place the slot again and again while its gate still passes."""


@dataclass(frozen=True)
class PlanPolicy:
    """Structural regime for ``build_plan``.

    Attributes:
        single_max_bars: Up to this many bars → one section.
        single_name / single_kind: The lone section's label and role.
        split_max_bars: Up to this many bars → two roughly equal sections.
        split: Labels and roles of the two halves.
        intro_bars: Fixed intro length in the long-form regime.
        main: Ordered main-section slots.
        specials: Ordered gated specials (solo, breakdown, bridge, ...)
            placed after the main slots.
        final_chorus_min_bars: Trailing remainder of at least this many
            bars becomes a chorus; shorter remainders become an outro.
            ``None`` always ends on an outro.
    """

    single_max_bars: int = 8
    single_name: str = "Main"
    single_kind: SectionKind = SectionKind.VERSE
    split_max_bars: int = 16
    split: tuple[tuple[str, SectionKind], tuple[str, SectionKind]] = (
        ("Verse", SectionKind.VERSE),
        ("Chorus", SectionKind.CHORUS),
    )
    intro_bars: int = 2
    main: tuple[PlannedSection, ...] = field(
        default_factory=lambda: (
            PlannedSection("Verse 1", SectionKind.VERSE, 8, min_remaining=1),
            PlannedSection("Chorus 1", SectionKind.CHORUS, 8, min_remaining=8),
        )
    )
    specials: tuple[PlannedSection, ...] = ()
    final_chorus_name: str = "Chorus 2"
    final_outro_name: str = "Outro"
    final_chorus_min_bars: int | None = 6


DEFAULT_POLICY = PlanPolicy()


def build_plan(total_bars: int, policy: PlanPolicy = DEFAULT_POLICY) -> CompositionPlan:
    """Partition ``[0, total_bars)`` into sections according to *policy*.

    - ``total_bars <= single_max_bars`` → one section spanning everything.
    - ``total_bars <= split_max_bars`` → two sections, the first
      ``total_bars // 2`` bars long.
    - otherwise → intro, main slots, enabled specials, then a trailing
      chorus or outro absorbing all remaining bars.

    Raises:
        ValueError: *total_bars* < 1.
        InternalConsistencyError: the result breaks the coverage invariant.
    """
    if total_bars < 1:
        raise ValueError(f"total_bars must be >= 1, got {total_bars}")

    sections: list[Section] = []
    if total_bars <= max(policy.single_max_bars, 1):
        sections.append(Section(policy.single_name, 0, total_bars, policy.single_kind))
    elif total_bars <= policy.split_max_bars:
        first = total_bars // 2
        (first_name, first_kind), (second_name, second_kind) = policy.split
        sections.append(Section(first_name, 0, first, first_kind))
        sections.append(Section(second_name, first, total_bars - first, second_kind))
    else:
        sections = _long_form(total_bars, policy)

    plan = CompositionPlan(tuple(sections))
    validate_plan(plan, total_bars)
    logger.debug(
        "✅ Planned %d bars: %s",
        total_bars,
        ", ".join(f"{s.name}[{s.start_bar}+{s.length_bars}]" for s in plan),
    )
    return plan


def _long_form(total_bars: int, policy: PlanPolicy) -> list[Section]:
    sections: list[Section] = []
    cursor = 0

    def remaining() -> int:
        return total_bars - cursor

    intro = min(max(policy.intro_bars, 0), total_bars - 1)
    if intro > 0:
        sections.append(Section("Intro", 0, intro, SectionKind.INTRO))
        cursor = intro

    for slot in (*policy.main, *policy.specials):
        if not slot.enabled or slot.length_bars <= 0:
            continue
        while remaining() >= max(slot.min_remaining, 1):
            length = min(slot.length_bars, remaining())
            sections.append(Section(slot.name, cursor, length, slot.kind))
            cursor += length
            if not slot.repeat:
                break

    tail = remaining()
    if tail > 0:
        chorus_min = policy.final_chorus_min_bars
        if chorus_min is not None and tail >= chorus_min:
            sections.append(Section(policy.final_chorus_name, cursor, tail, SectionKind.CHORUS))
        else:
            sections.append(Section(policy.final_outro_name, cursor, tail, SectionKind.OUTRO))
    return sections


def validate_plan(plan: CompositionPlan, total_bars: int) -> None:
    """Check that *plan* covers ``[0, total_bars)`` exactly once, in order.

    Raises:
        InternalConsistencyError: on an empty plan, a non-zero start, a gap or
            overlap, a non-positive length, or a wrong total.
    """
    if not plan.sections:
        raise InternalConsistencyError("plan has no sections")
    expected_start = 0
    for section in plan.sections:
        if section.length_bars <= 0:
            raise InternalConsistencyError(
                f"section '{section.name}' has non-positive length {section.length_bars}"
            )
        if section.start_bar != expected_start:
            raise InternalConsistencyError(
                f"section '{section.name}' starts at bar {section.start_bar}, "
                f"expected {expected_start}"
            )
        expected_start = section.end_bar
    if expected_start != total_bars:
        raise InternalConsistencyError(
            f"plan covers {expected_start} bars, expected {total_bars}"
        )


# ---------------------------------------------------------------------------
# Intensity
# ---------------------------------------------------------------------------


def section_intensity(section: Section, bar_in_section: int) -> float:
    """Return the playing intensity for *bar_in_section* of *section*.

    Pure function of the section kind, the bar position and the section
    length.  Intros ramp up, outros and breakdowns ramp down, choruses and
    solos sit above 1.0.  The result is clamped to ``[0.0, 1.5]``.

    Raises:
        ValueError: *bar_in_section* lies outside the section.
    """
    length = section.length_bars
    if not 0 <= bar_in_section < length:
        raise ValueError(
            f"bar_in_section {bar_in_section} outside section of {length} bars"
        )
    progress = (bar_in_section + 1) / length
    elapsed = bar_in_section / length

    kind = section.kind
    if kind is SectionKind.INTRO:
        value = 0.4 + 0.6 * progress
    elif kind is SectionKind.VERSE:
        value = 0.8
    elif kind is SectionKind.PRE_CHORUS:
        value = 0.85 + 0.15 * progress
    elif kind is SectionKind.CHORUS:
        value = 1.1
    elif kind is SectionKind.BRIDGE:
        value = 0.7
    elif kind is SectionKind.SOLO:
        value = 1.2
    elif kind is SectionKind.OUTRO:
        value = max(0.3, 1.0 - elapsed)
    elif kind is SectionKind.BREAKDOWN:
        value = max(0.2, 0.8 - 0.6 * elapsed)
    else:
        value = 0.8
    return min(INTENSITY_MAX, max(INTENSITY_MIN, value))
