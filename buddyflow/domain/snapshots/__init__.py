"""Snapshot domain layer: frozen per-assignment copies of flows."""
