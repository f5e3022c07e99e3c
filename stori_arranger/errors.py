"""Exit-code contract and exception types for Stori Arranger."""
from __future__ import annotations

import enum


class ExitCode(enum.IntEnum):
    """Standardised CLI exit codes.

    0 — success
    1 — user error (bad arguments, unknown genre, unreadable input)
    2 — output error (a file could not be written)
    3 — internal error (inconsistent timeline or plan)
    """

    SUCCESS = 0
    USER_ERROR = 1
    OUTPUT_ERROR = 2
    INTERNAL_ERROR = 3


class ArrangerError(Exception):
    """Base exception for Stori Arranger errors."""

    def __init__(self, message: str, exit_code: ExitCode = ExitCode.INTERNAL_ERROR) -> None:
        super().__init__(message)
        self.exit_code = exit_code


class InternalConsistencyError(ArrangerError):
    """Raised when a timeline or plan violates a structural invariant.

    Signals a defect in the arrangement framework or a composer.  The
    current composition is aborted; nothing is repaired silently.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=ExitCode.INTERNAL_ERROR)


class UnknownGenreError(ArrangerError):
    """Raised when a genre id is not present in the registry."""

    def __init__(self, genre: str, known: list[str] | None = None) -> None:
        hint = f" (known: {', '.join(known)})" if known else ""
        super().__init__(f"Unknown genre '{genre}'{hint}", exit_code=ExitCode.USER_ERROR)
        self.genre = genre


class OutputWriteError(ArrangerError):
    """Raised when a generated file cannot be written to disk."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=ExitCode.OUTPUT_ERROR)


class MidiFormatError(ArrangerError):
    """Raised when bytes being read back are not a well-formed MIDI file."""

    def __init__(self, message: str) -> None:
        super().__init__(message, exit_code=ExitCode.USER_ERROR)
