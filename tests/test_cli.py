"""Tests for the ``arranger`` CLI.

Commands are invoked through ``typer.testing.CliRunner`` against temporary
output directories.
"""
from __future__ import annotations

import json
import pathlib
import random

import pytest
from typer.testing import CliRunner

from stori_arranger.cli.app import cli
from stori_arranger.cli.commands import generate as generate_cmd
from stori_arranger.errors import ExitCode, InternalConsistencyError
from stori_arranger.services.composer import GenreComposer
from stori_arranger.services.registry import GenreRegistry

runner = CliRunner()


def _generate(tmp_path: pathlib.Path, *args: str) -> pathlib.Path:
    out = tmp_path / "out"
    result = runner.invoke(cli, ["generate", *args, "--output-dir", str(out)])
    assert result.exit_code == 0, result.output
    return out


class TestGenres:

    def test_lists_registered_genres(self) -> None:
        result = runner.invoke(cli, ["genres"])
        assert result.exit_code == 0
        assert result.output.split() == ["blues", "country", "rock"]


class TestGenerate:

    def test_writes_requested_files(self, tmp_path: pathlib.Path) -> None:
        out = tmp_path / "out"
        result = runner.invoke(
            cli, ["generate", "rock", "--count", "2", "--seed", "5", "-d", "10", "-o", str(out)]
        )
        assert result.exit_code == 0, result.output
        assert sorted(p.name for p in out.iterdir()) == ["rock_01.mid", "rock_02.mid"]
        assert "✅" in result.output
        assert "Generated 2/2 rock file(s) (master seed 5)" in result.output

    def test_seed_reproduces_batch(self, tmp_path: pathlib.Path) -> None:
        first = _generate(tmp_path / "a", "blues", "--seed", "9", "-d", "20")
        second = _generate(tmp_path / "b", "blues", "--seed", "9", "-d", "20")
        assert (first / "blues_01.mid").read_bytes() == (second / "blues_01.mid").read_bytes()

    def test_unknown_genre(self, tmp_path: pathlib.Path) -> None:
        result = runner.invoke(cli, ["generate", "polka", "-o", str(tmp_path)])
        assert result.exit_code == ExitCode.USER_ERROR
        assert "Unknown genre 'polka'" in result.output

    @pytest.mark.parametrize("duration", ["0", "nan", "inf"])
    def test_rejects_unusable_duration(self, tmp_path: pathlib.Path, duration: str) -> None:
        result = runner.invoke(cli, ["generate", "rock", "-d", duration, "-o", str(tmp_path)])
        assert result.exit_code == ExitCode.USER_ERROR
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "❌ Duration must be a positive number of seconds" in result.output
        assert not any(tmp_path.iterdir())

    def test_unexpected_error_is_reported(
        self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def explode(*args: object, **kwargs: object) -> None:
            raise RuntimeError("disk gremlins")

        monkeypatch.setattr(generate_cmd, "generate_batch", explode)
        result = runner.invoke(cli, ["generate", "rock", "-o", str(tmp_path)])
        assert result.exit_code == ExitCode.INTERNAL_ERROR
        assert "❌ arranger generate failed: disk gremlins" in result.output

    def test_exit_code_when_every_file_fails(
        self, tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(rng: random.Random) -> GenreComposer:
            raise InternalConsistencyError("plan has no sections")

        def registry() -> GenreRegistry:
            reg = GenreRegistry()
            reg.register("rock", broken)
            return reg

        monkeypatch.setattr(generate_cmd, "default_registry", registry)
        result = runner.invoke(cli, ["generate", "rock", "--count", "2", "-o", str(tmp_path)])
        assert result.exit_code == ExitCode.INTERNAL_ERROR
        assert "❌ File 1 (seed" in result.output
        assert "❌ File 2 (seed" in result.output
        assert "Generated 0/2" in result.output


class TestInspect:

    def test_human_summary(self, tmp_path: pathlib.Path) -> None:
        out = _generate(tmp_path, "country", "--seed", "3", "-d", "15")
        result = runner.invoke(cli, ["inspect", str(out / "country_01.mid")])
        assert result.exit_code == 0, result.output
        assert "ticks/beat      480" in result.output
        assert "note_on" in result.output

    def test_json_summary(self, tmp_path: pathlib.Path) -> None:
        out = _generate(tmp_path, "rock", "--seed", "3", "-d", "15")
        result = runner.invoke(cli, ["inspect", str(out / "rock_01.mid"), "--json"])
        assert result.exit_code == 0, result.output
        summary = json.loads(result.output)
        assert summary["format"] == 0
        assert summary["track_count"] == 1
        assert summary["time_signature"] == "4/4"
        assert summary["events"]["note_on"] == summary["events"]["note_off"]

    def test_not_a_midi_file(self, tmp_path: pathlib.Path) -> None:
        junk = tmp_path / "junk.mid"
        junk.write_bytes(b"not midi at all")
        result = runner.invoke(cli, ["inspect", str(junk)])
        assert result.exit_code == ExitCode.USER_ERROR
        assert "not a readable MIDI file" in result.output

    def test_missing_file(self, tmp_path: pathlib.Path) -> None:
        result = runner.invoke(cli, ["inspect", str(tmp_path / "nope.mid")])
        assert result.exit_code == ExitCode.USER_ERROR
        assert "Cannot read" in result.output
