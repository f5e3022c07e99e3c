"""Arranger CLI — Typer application root.

Entry point for the ``arranger`` console script.  Commands are registered
as plain ``@cli.command()`` functions so options may follow positional
arguments (``arranger generate rock --count 3``).
"""
from __future__ import annotations

import logging

import typer

from stori_arranger.cli.commands.generate import generate
from stori_arranger.cli.commands.genres import genres
from stori_arranger.cli.commands.inspect_file import inspect_file
from stori_arranger.config import settings

cli = typer.Typer(
    name="arranger",
    help="Arranger — procedural multi-instrument MIDI compositions.",
    no_args_is_help=True,
)


@cli.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log debug output (plans, clamps, writes)."
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose or settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


cli.command("generate", help="Generate a batch of MIDI files for a genre.")(generate)
cli.command("genres", help="List the registered genres.")(genres)
cli.command("inspect", help="Read a MIDI file back and summarize it.")(inspect_file)


if __name__ == "__main__":
    cli()
