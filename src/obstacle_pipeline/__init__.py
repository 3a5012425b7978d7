"""Obstacle Pipeline: temporal consolidation of segmented obstacles."""

__version__ = "0.1.0"
