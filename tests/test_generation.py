"""Tests for seeding, atomic writes and batch generation."""
from __future__ import annotations

import pathlib
import random

import pytest

from stori_arranger.config import settings
from stori_arranger.core.smf import read_smf
from stori_arranger.errors import (
    ExitCode,
    InternalConsistencyError,
    OutputWriteError,
    UnknownGenreError,
)
from stori_arranger.genres import rock
from stori_arranger.services.composer import GenreComposer
from stori_arranger.services.generation import (
    derive_seeds,
    generate_batch,
    generate_one,
    output_path_for,
    write_atomic,
)
from stori_arranger.services.registry import GenreRegistry


# ---------------------------------------------------------------------------
# Seeding
# ---------------------------------------------------------------------------


class TestSeeds:

    def test_derived_seeds_are_reproducible(self) -> None:
        assert derive_seeds(42, 5) == derive_seeds(42, 5)
        assert len(set(derive_seeds(42, 20))) == 20

    def test_prefix_is_stable(self) -> None:
        assert derive_seeds(42, 10)[:3] == derive_seeds(42, 3)

    def test_different_master_seed(self) -> None:
        assert derive_seeds(1, 3) != derive_seeds(2, 3)


class TestGenerateOne:

    @pytest.mark.parametrize("genre", ["rock", "blues", "country"])
    def test_same_seed_same_bytes(self, registry: GenreRegistry, genre: str) -> None:
        _, first = generate_one(registry, genre, 45, seed=99)
        _, second = generate_one(registry, genre, 45, seed=99)
        assert first == second

    def test_different_seeds_differ(self, registry: GenreRegistry) -> None:
        _, first = generate_one(registry, "rock", 45, seed=1)
        _, second = generate_one(registry, "rock", 45, seed=2)
        assert first != second


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class TestWriteAtomic:

    def test_writes_bytes_and_leaves_no_temp_file(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "nested" / "song.mid"
        assert write_atomic(target, b"MThd...") == target
        assert target.read_bytes() == b"MThd..."
        assert [p.name for p in target.parent.iterdir()] == ["song.mid"]

    def test_replaces_existing_file(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "song.mid"
        target.write_bytes(b"old")
        write_atomic(target, b"new")
        assert target.read_bytes() == b"new"

    def test_unwritable_destination(self, tmp_path: pathlib.Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        with pytest.raises(OutputWriteError) as excinfo:
            write_atomic(blocker / "song.mid", b"data")
        assert excinfo.value.exit_code == ExitCode.OUTPUT_ERROR

    def test_failed_rename_removes_temp_file(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "song.mid"
        target.mkdir()
        with pytest.raises(OutputWriteError):
            write_atomic(target, b"data")
        assert target.is_dir()
        assert [p.name for p in tmp_path.iterdir()] == ["song.mid"]
        assert not list(tmp_path.glob("*.tmp"))

    def test_output_path_naming(self, tmp_path: pathlib.Path) -> None:
        assert output_path_for(tmp_path, "rock", 3) == tmp_path / "rock_03.mid"


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------


class TestGenerateBatch:

    def test_writes_every_file(self, registry: GenreRegistry, tmp_path: pathlib.Path) -> None:
        result = generate_batch(registry, "Blues", 30, 3, tmp_path, seed=7)
        assert result.ok
        assert result.genre == "blues"
        assert result.master_seed == 7
        assert [f.path.name for f in result.written] == ["blues_01.mid", "blues_02.mid", "blues_03.mid"]
        for item in result.written:
            parsed = read_smf(item.path.read_bytes())
            assert parsed.format == 0
            assert item.byte_count == item.path.stat().st_size

    def test_seeded_batch_is_reproducible(
        self, registry: GenreRegistry, tmp_path: pathlib.Path
    ) -> None:
        first = generate_batch(registry, "country", 20, 2, tmp_path / "a", seed=11)
        second = generate_batch(registry, "country", 20, 2, tmp_path / "b", seed=11)
        for a, b in zip(first.written, second.written):
            assert a.seed == b.seed
            assert a.path.read_bytes() == b.path.read_bytes()

    def test_files_in_a_batch_are_independent(
        self, registry: GenreRegistry, tmp_path: pathlib.Path
    ) -> None:
        result = generate_batch(registry, "rock", 20, 2, tmp_path, seed=3)
        _, alone = generate_one(registry, "rock", 20, result.written[1].seed)
        assert result.written[1].path.read_bytes() == alone

    def test_count_is_capped(
        self,
        registry: GenreRegistry,
        tmp_path: pathlib.Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "max_batch_files", 2)
        result = generate_batch(registry, "rock", 10, 5, tmp_path, seed=1)
        assert len(result.written) == 2
        assert sorted(p.name for p in tmp_path.iterdir()) == ["rock_01.mid", "rock_02.mid"]

    def test_failing_file_does_not_stop_the_batch(self, tmp_path: pathlib.Path) -> None:
        calls = {"n": 0}

        def flaky(rng: random.Random) -> GenreComposer:
            calls["n"] += 1
            if calls["n"] == 2:
                raise InternalConsistencyError("broken plan")
            return rock.create(rng)

        registry = GenreRegistry()
        registry.register("rock", flaky)
        result = generate_batch(registry, "rock", 10, 3, tmp_path, seed=5)

        assert not result.ok
        assert [f.index for f in result.written] == [1, 3]
        (failure,) = result.failures
        assert failure.index == 2
        assert failure.error == "broken plan"
        assert failure.exit_code == ExitCode.INTERNAL_ERROR
        assert not (tmp_path / "rock_02.mid").exists()

    def test_unexpected_exception_does_not_stop_the_batch(self, tmp_path: pathlib.Path) -> None:
        calls = {"n": 0}

        def buggy(rng: random.Random) -> GenreComposer:
            calls["n"] += 1
            if calls["n"] == 2:
                raise IndexError("genre bug")
            return rock.create(rng)

        registry = GenreRegistry()
        registry.register("rock", buggy)
        result = generate_batch(registry, "rock", 10, 3, tmp_path, seed=5)

        assert [f.index for f in result.written] == [1, 3]
        (failure,) = result.failures
        assert failure.index == 2
        assert failure.error == "IndexError: genre bug"
        assert failure.exit_code == ExitCode.INTERNAL_ERROR

    def test_write_failure_does_not_stop_the_batch(
        self, registry: GenreRegistry, tmp_path: pathlib.Path
    ) -> None:
        (tmp_path / "rock_02.mid").mkdir()
        result = generate_batch(registry, "rock", 10, 3, tmp_path, seed=5)

        assert [f.index for f in result.written] == [1, 3]
        (failure,) = result.failures
        assert failure.index == 2
        assert failure.exit_code == ExitCode.OUTPUT_ERROR
        assert (tmp_path / "rock_02.mid").is_dir()
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "rock_01.mid",
            "rock_02.mid",
            "rock_03.mid",
        ]

    def test_unknown_genre_fails_before_writing(
        self, registry: GenreRegistry, tmp_path: pathlib.Path
    ) -> None:
        with pytest.raises(UnknownGenreError):
            generate_batch(registry, "polka", 10, 2, tmp_path / "out")
        assert not (tmp_path / "out").exists()

    def test_count_must_be_positive(self, registry: GenreRegistry, tmp_path: pathlib.Path) -> None:
        with pytest.raises(ValueError):
            generate_batch(registry, "rock", 10, 0, tmp_path)

    def test_random_master_seed_is_reported(
        self, registry: GenreRegistry, tmp_path: pathlib.Path
    ) -> None:
        result = generate_batch(registry, "rock", 10, 1, tmp_path)
        assert result.written[0].seed == derive_seeds(result.master_seed, 1)[0]
