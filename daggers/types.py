"""Shared type definitions for daggers.

This module contains enums shared across subpackages to avoid circular imports.
"""

from enum import Enum


class SvuCommand(str, Enum):
    """svu sub-command to run."""

    NEXT = "next"
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    CURRENT = "current"


class TagMode(str, Enum):
    """Value for the svu --tag-mode flag."""

    ALL_BRANCHES = "all-branches"
    CURRENT_BRANCH = "current-branch"


__all__ = ["SvuCommand", "TagMode"]
