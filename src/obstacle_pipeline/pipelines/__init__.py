"""Obstacle pipeline stages."""
