"""arranger genres — list the genre ids ``generate`` accepts."""
from __future__ import annotations

import typer

from stori_arranger.services.registry import default_registry


def genres() -> None:
    registry = default_registry()
    for name in registry.names():
        typer.echo(name)
