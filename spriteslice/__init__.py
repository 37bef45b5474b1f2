"""Sprite-sheet slicing: rect discovery, color keying, trimming and frame export."""

__version__ = "0.1.0"
