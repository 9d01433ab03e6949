"""Daggers - building blocks for containerized CI pipeline steps.

This package provides customizable container specifications, cache-efficient
tool installation and content-addressed cache volumes that persist build
state across pipeline runs.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
