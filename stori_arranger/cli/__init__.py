"""Stori Arranger command-line interface (``arranger`` console script)."""
