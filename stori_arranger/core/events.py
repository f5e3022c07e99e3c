"""Timed MIDI event — the single unit the timeline accumulates.

A ``TimedEvent`` pairs an absolute tick with the raw protocol bytes of one
MIDI message.  The first payload byte is the status byte; it identifies the
message kind and is also the serializer's tie-break key at equal ticks.

Payload shape is checked on construction.  A wrong byte count for the
declared kind is a programmer error and raises ``ValueError``; it is never
repaired.
"""
from __future__ import annotations

from dataclasses import dataclass

# Fixed timeline resolution (ticks per quarter note) written to every header.
TICKS_PER_BEAT = 480

# Channel voice status nibbles
NOTE_OFF = 0x80
NOTE_ON = 0x90
PROGRAM_CHANGE = 0xC0
CHANNEL_PRESSURE = 0xD0

# Meta events: FF <type> <len> <data...>
META = 0xFF
META_TEMPO = 0x51
META_TIME_SIGNATURE = 0x58
META_END_OF_TRACK = 0x2F

END_OF_TRACK_PAYLOAD = bytes([META, META_END_OF_TRACK, 0x00])

_TWO_BYTE_STATUSES = frozenset({PROGRAM_CHANGE, CHANNEL_PRESSURE})


def _expected_voice_length(status: int) -> int:
    return 2 if (status & 0xF0) in _TWO_BYTE_STATUSES else 3


@dataclass(frozen=True)
class TimedEvent:
    """One MIDI message at an absolute tick.

    Attributes:
        tick: Absolute position on the timeline (>= 0).
        payload: Raw message bytes, status byte first.
    """

    tick: int
    payload: bytes

    def __post_init__(self) -> None:
        if isinstance(self.tick, bool) or not isinstance(self.tick, int):
            raise ValueError(f"tick must be an int, got {type(self.tick).__name__}")
        if self.tick < 0:
            raise ValueError(f"tick must be >= 0, got {self.tick}")
        payload = bytes(self.payload)
        object.__setattr__(self, "payload", payload)
        if not payload:
            raise ValueError("payload must not be empty")
        _check_shape(payload)

    @property
    def discriminator(self) -> int:
        """Status byte — protocol kind and tie-break key."""
        return self.payload[0]

    @property
    def is_meta(self) -> bool:
        return self.payload[0] == META

    @property
    def is_end_of_track(self) -> bool:
        return self.payload == END_OF_TRACK_PAYLOAD

    @property
    def sort_key(self) -> tuple[int, int]:
        """``(tick, discriminator)`` — the serializer's ordering key."""
        return self.tick, self.payload[0]


def _check_shape(payload: bytes) -> None:
    status = payload[0]
    if status == META:
        if len(payload) < 3:
            raise ValueError(f"meta event too short: {payload.hex(' ')}")
        declared = payload[2]
        if len(payload) != 3 + declared:
            raise ValueError(
                f"meta event 0x{payload[1]:02X} declares {declared} data bytes, "
                f"carries {len(payload) - 3}"
            )
        return
    if status < 0x80 or status >= 0xF0:
        raise ValueError(f"unsupported status byte 0x{status:02X}")
    expected = _expected_voice_length(status)
    if len(payload) != expected:
        raise ValueError(
            f"status 0x{status:02X} needs {expected} bytes, got {len(payload)}"
        )
    for data_byte in payload[1:]:
        if data_byte > 0x7F:
            raise ValueError(f"data byte 0x{data_byte:02X} exceeds 7 bits")


def note_on(tick: int, channel: int, pitch: int, velocity: int) -> TimedEvent:
    return TimedEvent(tick, bytes([NOTE_ON | channel, pitch, velocity]))


def note_off(tick: int, channel: int, pitch: int) -> TimedEvent:
    return TimedEvent(tick, bytes([NOTE_OFF | channel, pitch, 0]))


def program_change(tick: int, channel: int, program: int) -> TimedEvent:
    return TimedEvent(tick, bytes([PROGRAM_CHANGE | channel, program]))


def meta_event(tick: int, meta_type: int, data: bytes = b"") -> TimedEvent:
    """Build a meta event ``FF <type> <len> <data>`` (data under 128 bytes)."""
    if len(data) > 0x7F:
        raise ValueError("meta data longer than 127 bytes needs a multi-byte length")
    return TimedEvent(tick, bytes([META, meta_type, len(data)]) + bytes(data))


def end_of_track(tick: int) -> TimedEvent:
    return TimedEvent(tick, END_OF_TRACK_PAYLOAD)
