"""Skill Router command-line interface."""

from skill_router import __version__

__all__ = ["__version__"]
