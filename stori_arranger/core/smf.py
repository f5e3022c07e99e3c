"""Standard MIDI File serializer (format 0, single track).

Provides:

- ``encode_vlq`` / ``decode_vlq`` — MIDI variable-length quantities.
- ``encode_track`` — sort, delta-encode and concatenate an event set.
- ``serialize`` — wrap the track stream in ``MThd`` + ``MTrk`` chunks.
- ``read_smf`` — read back a file written by ``serialize``.

Ordering contract: events are stable-sorted by ``(tick, status byte)``.
Insertion order is preserved among events sharing both.  Because the sort
key is the raw status byte, note-off (``0x8n``) sorts before note-on
(``0x9n``) and meta events (``0xFF``) sort after channel messages at the
same tick.

Boundary rules:
  - Pure bytes in, bytes out.  No file IO here; see
    ``services.generation.write_atomic``.
  - An inconsistent event set aborts with ``InternalConsistencyError``.
    A corrupt file is never returned.
"""
from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Iterable

from stori_arranger.core.events import (
    META,
    META_TEMPO,
    META_TIME_SIGNATURE,
    TICKS_PER_BEAT,
    TimedEvent,
)
from stori_arranger.errors import InternalConsistencyError, MidiFormatError

logger = logging.getLogger(__name__)

_HEADER_TAG = b"MThd"
_TRACK_TAG = b"MTrk"
_HEADER_LENGTH = 6
_FORMAT_SINGLE_TRACK = 0
_TRACK_COUNT = 1

#: Four 7-bit groups — the largest delta a MIDI VLQ may carry.
VLQ_MAX = (1 << 28) - 1


# ---------------------------------------------------------------------------
# Variable-length quantities
# ---------------------------------------------------------------------------


def encode_vlq(value: int) -> bytes:
    """Encode *value* as a MIDI variable-length quantity.

    Seven value bits per byte, most-significant group first; every byte
    except the last carries the 0x80 continuation bit.  Zero encodes to a
    single zero byte.

    Raises:
        ValueError: *value* is negative or exceeds ``VLQ_MAX``.
    """
    if value < 0:
        raise ValueError(f"VLQ value must be >= 0, got {value}")
    if value > VLQ_MAX:
        raise ValueError(f"VLQ value {value} exceeds 28-bit limit")
    groups = [value & 0x7F]
    value >>= 7
    while value:
        groups.append((value & 0x7F) | 0x80)
        value >>= 7
    return bytes(reversed(groups))


def decode_vlq(data: bytes, pos: int = 0) -> tuple[int, int]:
    """Read a variable-length quantity starting at *pos*.

    Returns ``(value, new_pos)`` where *new_pos* points past the last byte
    consumed.

    Raises:
        MidiFormatError: the data ends mid-quantity or uses more than four
            bytes.
    """
    value = 0
    for _ in range(4):
        if pos >= len(data):
            raise MidiFormatError("truncated variable-length quantity")
        b = data[pos]
        pos += 1
        value = (value << 7) | (b & 0x7F)
        if not (b & 0x80):
            return value, pos
    raise MidiFormatError("variable-length quantity longer than 4 bytes")


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def sort_events(events: Iterable[TimedEvent]) -> list[TimedEvent]:
    """Return *events* stable-sorted by ``(tick, status byte)``."""
    return sorted(events, key=lambda e: e.sort_key)


def encode_track(events: Iterable[TimedEvent]) -> bytes:
    """Return the delta-encoded event stream for one track chunk.

    Raises:
        InternalConsistencyError: the event set is empty, a delta comes out
            negative, or the last event after sorting is not end-of-track.
    """
    ordered = sort_events(events)
    if not ordered:
        raise InternalConsistencyError("cannot serialize an empty event set")
    if not ordered[-1].is_end_of_track:
        raise InternalConsistencyError(
            f"final event at tick {ordered[-1].tick} is not end-of-track "
            f"({ordered[-1].payload.hex(' ')})"
        )

    stream = bytearray()
    last_tick = 0
    for event in ordered:
        delta = event.tick - last_tick
        if delta < 0:
            raise InternalConsistencyError(
                f"negative delta {delta} at tick {event.tick} (previous {last_tick})"
            )
        stream += encode_vlq(delta)
        stream += event.payload
        last_tick = event.tick
    return bytes(stream)


def serialize(events: Iterable[TimedEvent], ticks_per_beat: int = TICKS_PER_BEAT) -> bytes:
    """Serialize *events* into a complete format-0 Standard MIDI File.

    Identical input always yields byte-identical output.
    """
    if not 0 < ticks_per_beat <= 0x7FFF:
        raise ValueError(f"ticks_per_beat must be in 1..32767, got {ticks_per_beat}")
    track = encode_track(events)
    header = _HEADER_TAG + struct.pack(
        ">IHHH", _HEADER_LENGTH, _FORMAT_SINGLE_TRACK, _TRACK_COUNT, ticks_per_beat
    )
    chunk = _TRACK_TAG + struct.pack(">I", len(track)) + track
    logger.debug("✅ Serialized %d track bytes at %d ticks/beat", len(track), ticks_per_beat)
    return header + chunk


# ---------------------------------------------------------------------------
# Reading back
# ---------------------------------------------------------------------------


@dataclass
class ParsedMidi:
    """Header fields and absolute-tick events read from a MIDI file."""

    format: int
    track_count: int
    ticks_per_beat: int
    events: list[TimedEvent] = field(default_factory=list)

    @property
    def end_tick(self) -> int:
        return self.events[-1].tick if self.events else 0

    def _first_meta(self, meta_type: int) -> bytes | None:
        for event in self.events:
            if event.is_meta and event.payload[1] == meta_type:
                return event.payload[3:]
        return None

    @property
    def tempo_bpm(self) -> float | None:
        """BPM from the first Set Tempo event, or ``None`` if there is none."""
        data = self._first_meta(META_TEMPO)
        if data is None or len(data) != 3:
            return None
        uspb = int.from_bytes(data, "big")
        return 60_000_000 / uspb if uspb else None

    @property
    def time_signature(self) -> tuple[int, int] | None:
        """``(numerator, denominator)`` from the first Time Signature event."""
        data = self._first_meta(META_TIME_SIGNATURE)
        if data is None or len(data) < 2:
            return None
        return data[0], 2 ** data[1]

    def count_by_status(self) -> dict[int, int]:
        """Event counts keyed by status nibble (meta events under 0xFF)."""
        counts: dict[int, int] = {}
        for event in self.events:
            key = META if event.is_meta else event.discriminator & 0xF0
            counts[key] = counts.get(key, 0) + 1
        return counts


def read_smf(data: bytes) -> ParsedMidi:
    """Parse a single-track Standard MIDI File back into timed events.

    Running status is accepted so files from other writers can be inspected.
    Only the first track chunk is read.

    Raises:
        MidiFormatError: the header or track chunk is missing or truncated.
    """
    if data[:4] != _HEADER_TAG:
        raise MidiFormatError("missing MThd header")
    if len(data) < 14:
        raise MidiFormatError("truncated MThd header")
    length, fmt, track_count, division = struct.unpack(">IHHH", data[4:14])
    if length < _HEADER_LENGTH:
        raise MidiFormatError(f"MThd length {length} is shorter than 6")
    pos = 8 + length
    if data[pos : pos + 4] != _TRACK_TAG:
        raise MidiFormatError("missing MTrk chunk")
    if len(data) < pos + 8:
        raise MidiFormatError("truncated MTrk header")
    (track_length,) = struct.unpack(">I", data[pos + 4 : pos + 8])
    start = pos + 8
    track = data[start : start + track_length]
    if len(track) != track_length:
        raise MidiFormatError(
            f"MTrk declares {track_length} bytes, only {len(track)} present"
        )

    parsed = ParsedMidi(format=fmt, track_count=track_count, ticks_per_beat=division)
    parsed.events = _read_track_events(track)
    return parsed


def _read_track_events(track: bytes) -> list[TimedEvent]:
    events: list[TimedEvent] = []
    pos = 0
    tick = 0
    running_status = 0
    while pos < len(track):
        delta, pos = decode_vlq(track, pos)
        tick += delta
        if pos >= len(track):
            raise MidiFormatError("track ends after a delta time")
        b = track[pos]

        if b == META:
            if pos + 2 >= len(track):
                raise MidiFormatError("truncated meta event")
            meta_len, data_pos = decode_vlq(track, pos + 2)
            if meta_len > 0x7F:
                raise MidiFormatError("meta events longer than 127 bytes are not supported")
            end = data_pos + meta_len
            if end > len(track):
                raise MidiFormatError("meta event runs past end of track")
            payload = bytes([META, track[pos + 1], meta_len]) + track[data_pos:end]
            pos = end
            running_status = 0
        elif b in (0xF0, 0xF7):
            raise MidiFormatError("sysex events are not supported")
        else:
            if b & 0x80:
                running_status = b
                pos += 1
            elif not running_status:
                raise MidiFormatError(f"data byte 0x{b:02X} without status")
            size = 1 if (running_status & 0xF0) in (0xC0, 0xD0) else 2
            if pos + size > len(track):
                raise MidiFormatError("truncated channel message")
            payload = bytes([running_status]) + track[pos : pos + size]
            pos += size

        try:
            events.append(TimedEvent(tick, payload))
        except ValueError as exc:
            raise MidiFormatError(f"malformed event at tick {tick}: {exc}") from exc
    return events
