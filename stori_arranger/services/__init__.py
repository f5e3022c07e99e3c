"""Services for Stori Arranger."""
from __future__ import annotations

from stori_arranger.services.composer import (
    BarContext,
    Composition,
    GenreComposer,
    compose,
)
from stori_arranger.services.generation import (
    BatchResult,
    generate_batch,
    generate_one,
    write_atomic,
)
from stori_arranger.services.registry import GenreRegistry, default_registry

__all__ = [
    "BarContext",
    "BatchResult",
    "Composition",
    "GenreComposer",
    "GenreRegistry",
    "compose",
    "default_registry",
    "generate_batch",
    "generate_one",
    "write_atomic",
]
