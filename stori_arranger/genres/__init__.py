"""Reference genre composers.

Each genre module exposes ``create(rng) -> GenreComposer``.  Registration
is explicit: add the module to ``BUILTIN_GENRES``.
"""
from __future__ import annotations

from typing import TYPE_CHECKING

from stori_arranger.genres import blues, country, rock

if TYPE_CHECKING:
    from stori_arranger.services.registry import GenreFactory, GenreRegistry

BUILTIN_GENRES: dict[str, "GenreFactory"] = {
    "blues": blues.create,
    "country": country.create,
    "rock": rock.create,
}


def register_builtin_genres(registry: "GenreRegistry") -> None:
    for genre, factory in BUILTIN_GENRES.items():
        registry.register(genre, factory)
