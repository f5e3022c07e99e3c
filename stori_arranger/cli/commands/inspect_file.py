"""arranger inspect — read a MIDI file back and print what it contains.

Reports the header fields, tempo, time signature, end tick and event
counts per kind.  ``--json`` emits the same data machine-readably.
"""
from __future__ import annotations

import json
import pathlib
from typing import Any

import typer

from stori_arranger.core.events import META, NOTE_OFF, NOTE_ON, PROGRAM_CHANGE
from stori_arranger.core.smf import ParsedMidi, read_smf
from stori_arranger.errors import ExitCode, MidiFormatError

_KIND_LABELS = {
    NOTE_ON: "note_on",
    NOTE_OFF: "note_off",
    PROGRAM_CHANGE: "program_change",
    META: "meta",
}


def _summary(path: pathlib.Path, parsed: ParsedMidi) -> dict[str, Any]:
    counts = {
        _KIND_LABELS.get(status, f"0x{status:02X}"): n
        for status, n in sorted(parsed.count_by_status().items())
    }
    signature = parsed.time_signature
    bpm = parsed.tempo_bpm
    return {
        "path": str(path),
        "format": parsed.format,
        "track_count": parsed.track_count,
        "ticks_per_beat": parsed.ticks_per_beat,
        "tempo_bpm": round(bpm, 2) if bpm is not None else None,
        "time_signature": f"{signature[0]}/{signature[1]}" if signature else None,
        "end_tick": parsed.end_tick,
        "event_count": len(parsed.events),
        "events": counts,
    }


def _print_human(summary: dict[str, Any]) -> None:
    typer.echo(f"file            {summary['path']}")
    typer.echo(f"format          {summary['format']} ({summary['track_count']} track)")
    typer.echo(f"ticks/beat      {summary['ticks_per_beat']}")
    bpm = summary["tempo_bpm"]
    typer.echo(f"tempo           {bpm if bpm is not None else '--'} BPM")
    typer.echo(f"time signature  {summary['time_signature'] or '--'}")
    typer.echo(f"end tick        {summary['end_tick']}")
    typer.echo(f"events          {summary['event_count']}")
    for label, n in summary["events"].items():
        typer.echo(f"  {label:<14}{n}")


def inspect_file(
    path: pathlib.Path = typer.Argument(..., help="MIDI file to read."),
    as_json: bool = typer.Option(False, "--json", help="Emit machine-readable JSON."),
) -> None:
    try:
        data = path.read_bytes()
    except OSError as exc:
        typer.echo(f"❌ Cannot read {path}: {exc.strerror or exc}")
        raise typer.Exit(code=ExitCode.USER_ERROR)

    try:
        parsed = read_smf(data)
    except MidiFormatError as exc:
        typer.echo(f"❌ {path} is not a readable MIDI file: {exc}")
        raise typer.Exit(code=exc.exit_code)

    summary = _summary(path, parsed)
    if as_json:
        typer.echo(json.dumps(summary, indent=2))
    else:
        _print_human(summary)
