"""Rendering helpers for merged map tables."""
