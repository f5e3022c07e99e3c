"""arranger generate — compose a batch of MIDI files for one genre.

Usage
-----
::

    arranger generate rock                       # one file, default duration
    arranger generate blues --count 5 -d 90      # five 90-second files
    arranger generate country --seed 42 -o out/  # reproducible batch

Each file is composed from its own seed, derived from the batch's master
seed.  Passing ``--seed`` reproduces a batch byte for byte; without it a
fresh master seed is drawn and printed so the batch can be regenerated.

A file that fails is reported and skipped.  The command exits non-zero
only when no file could be produced.
"""
from __future__ import annotations

import logging
import math
import pathlib
from typing import Optional

import typer

from stori_arranger.config import settings
from stori_arranger.errors import ArrangerError, ExitCode
from stori_arranger.services.generation import BatchResult, generate_batch
from stori_arranger.services.registry import default_registry

logger = logging.getLogger(__name__)


def _print_report(result: BatchResult, requested: int) -> None:
    for item in result.written:
        typer.echo(
            f"✅ {item.path}  ({item.total_bars} bars, {item.tempo_bpm} BPM, "
            f"{item.byte_count} bytes, seed {item.seed})"
        )
    for failure in result.failures:
        typer.echo(f"❌ File {failure.index} (seed {failure.seed}): {failure.error}")
    total = len(result.written) + len(result.failures)
    typer.echo(
        f"Generated {len(result.written)}/{total} {result.genre} file(s) "
        f"(master seed {result.master_seed})"
    )
    if total < requested:
        typer.echo(f"⚠️ Requested {requested}; capped at {settings.max_batch_files}")


def generate(
    genre: str = typer.Argument(..., help="Genre id (see 'arranger genres')."),
    duration: Optional[float] = typer.Option(
        None,
        "--duration",
        "-d",
        help="Target length in seconds (default from ARRANGER_DEFAULT_DURATION_SECONDS).",
    ),
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of files to generate."),
    seed: Optional[int] = typer.Option(
        None, "--seed", help="Master seed; the same seed reproduces the same batch."
    ),
    output_dir: Optional[pathlib.Path] = typer.Option(
        None, "--output-dir", "-o", help="Directory for the .mid files."
    ),
) -> None:
    duration_seconds = float(duration if duration is not None else settings.default_duration_seconds)
    if not math.isfinite(duration_seconds) or duration_seconds <= 0:
        typer.echo(f"❌ Duration must be a positive number of seconds, got {duration_seconds:g}")
        raise typer.Exit(code=ExitCode.USER_ERROR)
    target = output_dir if output_dir is not None else pathlib.Path(settings.output_dir)

    try:
        result = generate_batch(
            default_registry(),
            genre,
            duration_seconds,
            count,
            target,
            seed=seed,
        )
    except ArrangerError as exc:
        typer.echo(f"❌ {exc}")
        raise typer.Exit(code=exc.exit_code)
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"❌ arranger generate failed: {exc}")
        logger.error("❌ arranger generate error: %s", exc, exc_info=True)
        raise typer.Exit(code=ExitCode.INTERNAL_ERROR)

    _print_report(result, count)
    if not result.written:
        raise typer.Exit(code=result.failures[0].exit_code)
