"""Genre registry — explicit genre id → factory mapping.

Genres are registered by name at startup (``default_registry``); nothing
is discovered by scanning modules or types.  A factory receives the
composition's private ``random.Random`` and returns a fresh
``GenreComposer``; instances are never reused across compositions.
"""
from __future__ import annotations

import logging
import random
from typing import Callable

from stori_arranger.errors import UnknownGenreError
from stori_arranger.services.composer import GenreComposer

logger = logging.getLogger(__name__)

GenreFactory = Callable[[random.Random], GenreComposer]
"""Builds one composer instance from the composition's generator."""


class GenreRegistry:
    """Mutable mapping of lowercase genre ids to composer factories."""

    def __init__(self) -> None:
        self._factories: dict[str, GenreFactory] = {}

    @staticmethod
    def _key(genre: str) -> str:
        return genre.strip().lower()

    def register(self, genre: str, factory: GenreFactory) -> None:
        """Register *factory* under *genre*.

        Raises:
            ValueError: *genre* is blank or already registered.
        """
        key = self._key(genre)
        if not key:
            raise ValueError("genre id must not be blank")
        if key in self._factories:
            raise ValueError(f"genre '{key}' is already registered")
        self._factories[key] = factory
        logger.debug("Registered genre %s", key)

    def create(self, genre: str, rng: random.Random) -> GenreComposer:
        """Instantiate the composer for *genre* with its own generator.

        Raises:
            UnknownGenreError: *genre* is not registered.
        """
        key = self._key(genre)
        factory = self._factories.get(key)
        if factory is None:
            raise UnknownGenreError(genre, self.names())
        return factory(rng)

    def names(self) -> list[str]:
        return sorted(self._factories)

    def __contains__(self, genre: object) -> bool:
        return isinstance(genre, str) and self._key(genre) in self._factories

    def __len__(self) -> int:
        return len(self._factories)


def default_registry() -> GenreRegistry:
    """Return a registry populated with the bundled reference genres."""
    from stori_arranger.genres import register_builtin_genres

    registry = GenreRegistry()
    register_builtin_genres(registry)
    return registry
