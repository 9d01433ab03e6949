"""Immutable container specifications.

This module handles:
- Cache volume and secret handles resolved by a build client
- The Container value threaded through customizers

Every ``with_*`` method returns a new Container with a bumped revision;
the receiver is never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path

from pydantic import SecretStr


@dataclass(frozen=True)
class CacheVolume:
    """Named persistent storage owned by the build client's namespace."""

    name: str


@dataclass(frozen=True)
class Secret:
    """Opaque handle to a host secret.

    The plaintext is only revealed by the engine when injecting it into
    the final container process.
    """

    name: str
    value: SecretStr

    def __repr__(self) -> str:
        return f"Secret(name={self.name!r}, value=**********)"

    __str__ = __repr__


@dataclass(frozen=True)
class CacheMount:
    """A cache volume mounted at a path inside the container."""

    path: str
    volume: CacheVolume


@dataclass(frozen=True)
class DirectoryMount:
    """A host directory mounted at a path inside the container."""

    path: str
    source: Path


@dataclass(frozen=True)
class SecretVariable:
    """An environment variable whose value comes from a secret."""

    name: str
    secret: Secret


@dataclass(frozen=True)
class Container:
    """Immutable, versioned container specification.

    Attributes:
        image: Base image reference.
        env: Plain environment variables as ordered (name, value) pairs.
        image_env: Environment baked into the image, as reported by the
            build client. Not passed to the container run.
        mounts: Cache volume mounts. A path holds at most one mount of
            either kind.
        directories: Host directory mounts.
        secrets: Secret environment variables, at most one per name.
        workdir: Working directory inside the container.
        steps: Pending exec steps, run in order.
        revision: Number of transformations applied since the base image.
    """

    image: str
    env: tuple[tuple[str, str], ...] = ()
    image_env: tuple[tuple[str, str], ...] = ()
    mounts: tuple[CacheMount, ...] = ()
    directories: tuple[DirectoryMount, ...] = ()
    secrets: tuple[SecretVariable, ...] = ()
    workdir: str | None = None
    steps: tuple[tuple[str, ...], ...] = ()
    revision: int = 0

    def _evolve(self, **changes: object) -> Container:
        return replace(self, revision=self.revision + 1, **changes)

    def env_variable(self, name: str) -> str | None:
        """Return the explicitly set value of an environment variable."""
        for key, value in self.env:
            if key == name:
                return value
        return None

    def effective_env_variable(self, name: str) -> str | None:
        """Return the value a variable has at run time.

        An explicitly set value wins over the image's own environment.
        """
        value = self.env_variable(name)
        if value is not None:
            return value
        for key, image_value in self.image_env:
            if key == name:
                return image_value
        return None

    def env_dict(self) -> dict[str, str]:
        """Return plain environment variables as a dict."""
        return dict(self.env)

    def with_env_variable(self, name: str, value: str) -> Container:
        """Set an environment variable, overwriting any previous value."""
        if not name:
            raise ValueError("environment variable name must not be empty")
        env = tuple((k, v) for k, v in self.env if k != name) + ((name, value),)
        secrets = tuple(s for s in self.secrets if s.name != name)
        return self._evolve(env=env, secrets=secrets)

    def with_secret_variable(self, name: str, secret: Secret) -> Container:
        """Expose a secret as an environment variable."""
        env = tuple((k, v) for k, v in self.env if k != name)
        secrets = tuple(s for s in self.secrets if s.name != name) + (
            SecretVariable(name, secret),
        )
        return self._evolve(env=env, secrets=secrets)

    def with_mounted_cache(self, path: str, volume: CacheVolume) -> Container:
        """Mount a cache volume, replacing any mount at the same path."""
        mounts = tuple(m for m in self.mounts if m.path != path) + (
            CacheMount(path, volume),
        )
        directories = tuple(d for d in self.directories if d.path != path)
        return self._evolve(mounts=mounts, directories=directories)

    def with_mounted_directory(self, path: str, source: Path) -> Container:
        """Mount a host directory, replacing any mount at the same path."""
        directories = tuple(d for d in self.directories if d.path != path) + (
            DirectoryMount(path, source),
        )
        mounts = tuple(m for m in self.mounts if m.path != path)
        return self._evolve(mounts=mounts, directories=directories)

    def with_workdir(self, path: str) -> Container:
        """Set the working directory for exec steps."""
        return self._evolve(workdir=path)

    def with_exec(self, args: list[str] | tuple[str, ...]) -> Container:
        """Append an exec step."""
        if not args:
            raise ValueError("exec step requires at least one argument")
        return self._evolve(steps=self.steps + (tuple(args),))


__all__ = [
    "CacheMount",
    "CacheVolume",
    "Container",
    "DirectoryMount",
    "Secret",
    "SecretVariable",
]
