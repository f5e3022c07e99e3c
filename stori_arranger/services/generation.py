"""Batch generation — compose, serialize and write MIDI files.

Provides:

- ``derive_seeds`` — independent per-file seeds from one master seed.
- ``generate_one`` — one composition → bytes, with its own generator.
- ``write_atomic`` — temp file in the destination directory + ``os.replace``.
- ``generate_batch`` — N files; a failing file is recorded and skipped.

Each file gets a fresh ``random.Random`` and a fresh composer instance, so
no randomness is shared or interleaved between outputs.  The full byte
array is built in memory before anything touches the disk; a partial file
is never left behind.
"""
from __future__ import annotations

import logging
import os
import pathlib
import random
import secrets
import tempfile
from dataclasses import dataclass, field

from stori_arranger.config import settings
from stori_arranger.errors import (
    ArrangerError,
    ExitCode,
    OutputWriteError,
    UnknownGenreError,
)
from stori_arranger.services.composer import Composition, compose
from stori_arranger.services.registry import GenreRegistry

logger = logging.getLogger(__name__)

_SEED_BITS = 63


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GeneratedFile:
    """One successfully written composition."""

    index: int
    seed: int
    path: pathlib.Path
    total_bars: int
    tempo_bpm: int
    byte_count: int


@dataclass(frozen=True)
class FailedFile:
    """One composition that could not be produced or written."""

    index: int
    seed: int
    error: str
    exit_code: ExitCode = ExitCode.INTERNAL_ERROR


@dataclass
class BatchResult:
    """Outcome of ``generate_batch``.

    Attributes:
        genre: Registry id that was generated.
        master_seed: Seed the per-file seeds were derived from.
        written: Files written, in batch order.
        failures: Files that failed, in batch order.
    """

    genre: str
    master_seed: int
    written: list[GeneratedFile] = field(default_factory=list)
    failures: list[FailedFile] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


def derive_seeds(master_seed: int, count: int) -> list[int]:
    """Return *count* per-file seeds drawn from ``random.Random(master_seed)``."""
    master = random.Random(master_seed)
    return [master.getrandbits(_SEED_BITS) for _ in range(count)]


def new_master_seed() -> int:
    return secrets.randbits(_SEED_BITS)


# ---------------------------------------------------------------------------
# Single composition
# ---------------------------------------------------------------------------


def generate_one(
    registry: GenreRegistry,
    genre: str,
    duration_seconds: float,
    seed: int,
) -> tuple[Composition, bytes]:
    """Compose one piece of *genre* from *seed* and serialize it.

    The same ``(genre, duration_seconds, seed)`` always yields identical
    bytes.
    """
    rng = random.Random(seed)
    composer = registry.create(genre, rng)
    composition = compose(composer, duration_seconds, rng)
    return composition, composition.to_bytes()


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def write_atomic(path: pathlib.Path, data: bytes) -> pathlib.Path:
    """Write *data* to *path* so the file appears complete or not at all.

    Bytes go to a temporary file in the destination directory, which is
    then renamed over *path*.  On failure the temporary file is removed.

    Raises:
        OutputWriteError: the directory or file cannot be written.
    """
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="wb", dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
        ) as tf:
            tmp_name = tf.name
            tf.write(data)
            tf.flush()
            os.fsync(tf.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        if tmp_name is not None:
            pathlib.Path(tmp_name).unlink(missing_ok=True)
        raise OutputWriteError(f"could not write {path}: {exc}") from exc
    logger.debug("✅ Wrote %d bytes to %s", len(data), path)
    return path


def output_path_for(output_dir: pathlib.Path, genre: str, index: int) -> pathlib.Path:
    return output_dir / f"{genre}_{index:02d}.mid"


def generate_batch(
    registry: GenreRegistry,
    genre: str,
    duration_seconds: float,
    count: int,
    output_dir: pathlib.Path,
    seed: int | None = None,
) -> BatchResult:
    """Generate *count* files of *genre* into *output_dir*.

    *count* is capped at ``settings.max_batch_files``.  Each file is
    composed from its own derived seed; a failure in one file (composition
    or write) is logged, recorded in ``BatchResult.failures`` and does not
    stop the remaining files.

    Raises:
        UnknownGenreError: *genre* is not registered (checked up front).
        ValueError: *count* < 1.
    """
    if count < 1:
        raise ValueError(f"count must be >= 1, got {count}")
    if genre not in registry:
        raise UnknownGenreError(genre, registry.names())
    if count > settings.max_batch_files:
        logger.warning(
            "⚠️ Requested %d files; capped at %d", count, settings.max_batch_files
        )
        count = settings.max_batch_files

    master_seed = seed if seed is not None else new_master_seed()
    key = genre.strip().lower()
    result = BatchResult(genre=key, master_seed=master_seed)

    for index, file_seed in enumerate(derive_seeds(master_seed, count), start=1):
        path = output_path_for(output_dir, key, index)
        try:
            composition, data = generate_one(registry, key, duration_seconds, file_seed)
            write_atomic(path, data)
        except ArrangerError as exc:
            logger.error("❌ File %d/%d (%s) failed: %s", index, count, path.name, exc)
            result.failures.append(
                FailedFile(index=index, seed=file_seed, error=str(exc), exit_code=exc.exit_code)
            )
            continue
        except Exception as exc:
            logger.error(
                "❌ File %d/%d (%s) failed: %s", index, count, path.name, exc, exc_info=True
            )
            result.failures.append(
                FailedFile(
                    index=index,
                    seed=file_seed,
                    error=f"{type(exc).__name__}: {exc}",
                    exit_code=ExitCode.INTERNAL_ERROR,
                )
            )
            continue
        result.written.append(
            GeneratedFile(
                index=index,
                seed=file_seed,
                path=path,
                total_bars=composition.total_bars,
                tempo_bpm=composition.tempo_bpm,
                byte_count=len(data),
            )
        )
        logger.info("✅ Generated %d/%d: %s", index, count, path)

    return result
