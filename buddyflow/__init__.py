"""Snapshot-based learning flow assignment and progress engine."""

__version__ = "0.1.0"
