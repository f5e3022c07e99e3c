"""Tests for the explicit genre registry."""
from __future__ import annotations

import random

import pytest

from stori_arranger.errors import ExitCode, UnknownGenreError
from stori_arranger.genres.blues import BluesComposer
from stori_arranger.services.registry import GenreRegistry


def test_default_registry_has_reference_genres(registry: GenreRegistry) -> None:
    assert registry.names() == ["blues", "country", "rock"]
    assert len(registry) == 3


def test_lookup_is_case_insensitive(registry: GenreRegistry) -> None:
    assert " Blues " in registry
    assert isinstance(registry.create("BLUES", random.Random(0)), BluesComposer)


def test_create_returns_a_fresh_instance(registry: GenreRegistry) -> None:
    first = registry.create("rock", random.Random(0))
    second = registry.create("rock", random.Random(0))
    assert first is not second


def test_unknown_genre(registry: GenreRegistry) -> None:
    with pytest.raises(UnknownGenreError) as excinfo:
        registry.create("polka", random.Random(0))
    assert excinfo.value.genre == "polka"
    assert excinfo.value.exit_code == ExitCode.USER_ERROR
    assert "blues, country, rock" in str(excinfo.value)


def test_register_rejects_duplicates_and_blank_names() -> None:
    registry = GenreRegistry()
    registry.register("blues", BluesComposer)
    with pytest.raises(ValueError):
        registry.register("Blues", BluesComposer)
    with pytest.raises(ValueError):
        registry.register("  ", BluesComposer)


def test_contains_ignores_non_strings(registry: GenreRegistry) -> None:
    assert 3 not in registry
