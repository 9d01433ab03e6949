"""Container engine module.

This module handles:
- Immutable container specifications passed through customizers
- The build client interface and its docker CLI implementation
"""

from daggers.engine.client import BuildClient, DockerClient
from daggers.engine.container import CacheVolume, Container, Secret

__all__ = [
    "BuildClient",
    "CacheVolume",
    "Container",
    "DockerClient",
    "Secret",
]
