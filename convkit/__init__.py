"""Lint, format, and sync JSON files against convention policies."""

__version__ = "0.3.0"
