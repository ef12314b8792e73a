"""Render ordered image/caption slides into a single MP4."""

__version__ = "0.1.0"
