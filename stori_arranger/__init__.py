"""Stori Arranger — procedural multi-instrument MIDI arrangements."""
from __future__ import annotations

__version__ = "0.1.0"
