"""Gym back office core: scheduling and contract lifecycle."""

__version__ = "0.1.0"
