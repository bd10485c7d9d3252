"""Snapshot editor extensions and settings into a GitHub repository."""

__version__ = "0.1.0"
