"""Test helpers for skill-router.

This package provides utilities shared across test modules:
- run_git: Run git in a temporary repository with a fixed identity
- make_change: Build FileChangeRecords without touching git
"""

from .changes import make_change
from .git import GIT_AVAILABLE, run_git

__all__ = [
    "GIT_AVAILABLE",
    "make_change",
    "run_git",
]
