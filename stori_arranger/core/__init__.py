"""Composition core: events, timeline, arrangement and MIDI serialization."""
from __future__ import annotations

from stori_arranger.core.arrangement import (
    DEFAULT_POLICY,
    CompositionPlan,
    PlannedSection,
    PlanPolicy,
    Section,
    SectionKind,
    bars_from_duration,
    build_plan,
    section_intensity,
    validate_plan,
)
from stori_arranger.core.events import TICKS_PER_BEAT, TimedEvent
from stori_arranger.core.smf import decode_vlq, encode_vlq, read_smf, serialize
from stori_arranger.core.timeline import TickClock, TimelineBuilder

__all__ = [
    "DEFAULT_POLICY",
    "CompositionPlan",
    "PlannedSection",
    "PlanPolicy",
    "Section",
    "SectionKind",
    "TICKS_PER_BEAT",
    "TickClock",
    "TimedEvent",
    "TimelineBuilder",
    "bars_from_duration",
    "build_plan",
    "decode_vlq",
    "encode_vlq",
    "read_smf",
    "section_intensity",
    "serialize",
    "validate_plan",
]
