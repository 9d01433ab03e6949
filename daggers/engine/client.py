"""Build client for resolving cache volumes and running containers.

This module handles:
- The BuildClient interface consumed by customizers and the pipeline
- Resolving cache volumes as named Docker volumes
- Wrapping host environment values as secrets
- Rendering a Container into a `docker run` command and executing it

Secret values are passed to the docker CLI through its process environment
and referenced by name with `-e NAME`, so they never appear in argv or logs.
"""

from __future__ import annotations

import json
import logging
import os
import shlex
import subprocess
import threading
import time
from collections.abc import Mapping
from typing import Protocol

from pydantic import SecretStr

from daggers.engine.container import CacheVolume, Container, Secret
from daggers.errors import (
    EXECUTION_ERROR,
    ExecutionError,
    ImageResolutionError,
    PipelineCancelledError,
    VolumeResolutionError,
)

logger = logging.getLogger(__name__)

# Label applied to every cache volume created through this client
CACHE_VOLUME_LABEL = "dev.daggers.cache=true"

# Interval for polling the container process while watching for cancellation
POLL_INTERVAL = 0.2


class BuildClient(Protocol):
    """Operations the pipeline needs from a container build engine."""

    def container(self, image: str) -> Container:
        """Return a base container carrying the image's own environment."""
        ...

    def cache_volume(self, name: str) -> CacheVolume:
        """Resolve the cache volume with this name, creating it if needed."""
        ...

    def host_env_secret(self, name: str) -> Secret | None:
        """Wrap a host environment variable as a secret, if it is set."""
        ...

    def stdout(
        self,
        container: Container,
        *,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run the container's exec steps and return their standard output."""
        ...


def render_script(container: Container) -> str:
    """Render the container's exec steps as a fail-fast shell script.

    Args:
        container: Container whose steps to render.

    Returns:
        Script text for `sh -ec`.
    """
    return "\n".join(shlex.join(step) for step in container.steps)


class DockerClient:
    """BuildClient backed by the docker CLI.

    Args:
        binary: Docker CLI executable.
        environ: Host environment used for secrets (defaults to os.environ).
        dry_run: Render commands instead of running docker.
    """

    def __init__(
        self,
        binary: str = "docker",
        environ: Mapping[str, str] | None = None,
        dry_run: bool = False,
    ) -> None:
        self.binary = binary
        self.environ = os.environ if environ is None else environ
        self.dry_run = dry_run

    def container(self, image: str) -> Container:
        """Return a base container carrying the image's own environment.

        Raises:
            ImageResolutionError: If the image cannot be pulled or inspected.
        """
        if not image:
            raise ValueError("image reference must not be empty")
        return Container(image=image, image_env=self.image_env(image))

    def _inspect_env(self, image: str) -> str:
        cmd = [
            self.binary,
            "image",
            "inspect",
            "--format",
            "{{json .Config.Env}}",
            image,
        ]
        result = subprocess.run(cmd, capture_output=True, text=True, check=True)
        return result.stdout

    def image_env(self, image: str) -> tuple[tuple[str, str], ...]:
        """Read the environment configured in an image.

        The image is pulled once if it is not available locally. Dry runs
        report an empty environment without calling docker.

        Args:
            image: Image reference.

        Returns:
            Ordered (name, value) pairs.

        Raises:
            ImageResolutionError: If docker cannot pull or inspect the image.
        """
        if self.dry_run:
            logger.debug("Dry run: skipping inspection of image %s", image)
            return ()

        try:
            try:
                raw = self._inspect_env(image)
            except subprocess.CalledProcessError:
                logger.info("Pulling image %s", image)
                subprocess.run(
                    [self.binary, "pull", "--quiet", image],
                    capture_output=True,
                    text=True,
                    check=True,
                )
                raw = self._inspect_env(image)
        except subprocess.CalledProcessError as e:
            raise ImageResolutionError(image, e.stderr.strip() or str(e)) from e
        except OSError as e:
            raise ImageResolutionError(image, str(e)) from e

        try:
            entries = json.loads(raw) or []
        except json.JSONDecodeError as e:
            raise ImageResolutionError(image, f"unexpected inspect output: {e}") from e

        env = []
        for entry in entries:
            name, sep, value = entry.partition("=")
            if name and sep:
                env.append((name, value))
        return tuple(env)

    def cache_volume(self, name: str) -> CacheVolume:
        """Resolve a named volume.

        `docker volume create` returns the existing volume when the name is
        already taken, so concurrent first resolutions end up on one volume.

        Raises:
            VolumeResolutionError: If docker cannot create or look up the volume.
        """
        if self.dry_run:
            logger.debug("Dry run: skipping creation of volume %s", name)
            return CacheVolume(name)

        cmd = [self.binary, "volume", "create", "--label", CACHE_VOLUME_LABEL, name]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            raise VolumeResolutionError(name, e.stderr.strip() or str(e)) from e
        except OSError as e:
            raise VolumeResolutionError(name, str(e)) from e

        resolved = result.stdout.strip() or name
        logger.info("Resolved cache volume %s", resolved)
        return CacheVolume(resolved)

    def host_env_secret(self, name: str) -> Secret | None:
        """Wrap a host environment variable as a secret, if it is set."""
        value = self.environ.get(name)
        if value is None:
            logger.debug("Host secret %s is not set", name)
            return None
        return Secret(name, SecretStr(value))

    def render_command(self, container: Container) -> list[str]:
        """Compose the `docker run` command for a container.

        Args:
            container: Container to render.

        Returns:
            Command as list of strings suitable for subprocess.
        """
        cmd = [self.binary, "run", "--rm"]

        for key, value in container.env:
            cmd.extend(["-e", f"{key}={value}"])
        for secret_var in container.secrets:
            cmd.extend(["-e", secret_var.name])
        for mount in container.mounts:
            cmd.extend(["-v", f"{mount.volume.name}:{mount.path}"])
        for directory in container.directories:
            cmd.extend(["-v", f"{directory.source}:{directory.path}"])
        if container.workdir:
            cmd.extend(["-w", container.workdir])

        if container.steps:
            cmd.extend(["--entrypoint", "sh", container.image, "-ec"])
            cmd.append(render_script(container))
        else:
            cmd.append(container.image)

        return cmd

    def _process_env(self, container: Container) -> dict[str, str]:
        env = dict(os.environ)
        for secret_var in container.secrets:
            env[secret_var.name] = secret_var.secret.value.get_secret_value()
        return env

    def stdout(
        self,
        container: Container,
        *,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run the container and return its standard output.

        Args:
            container: Container to run.
            cancel_event: Event that aborts the run when set.
            timeout: Maximum run time in seconds (None = no timeout).

        Returns:
            Captured standard output.

        Raises:
            ExecutionError: If the container cannot start, times out or exits
                non-zero.
            PipelineCancelledError: If cancel_event is set during the run.
        """
        cmd = self.render_command(container)
        cmd_str = shlex.join(cmd)

        if self.dry_run:
            logger.info("Dry run: %s", cmd_str)
            return cmd_str + "\n"

        logger.info("Executing container: %s", cmd_str)

        if cancel_event is not None and cancel_event.is_set():
            raise PipelineCancelledError()

        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=self._process_env(container),
            )
        except OSError as e:
            raise ExecutionError(
                f"Failed to start container: {e}",
                code="start_error",
            ) from e

        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            while True:
                try:
                    out, err = proc.communicate(timeout=POLL_INTERVAL)
                    break
                except subprocess.TimeoutExpired:
                    if cancel_event is not None and cancel_event.is_set():
                        logger.warning("Cancelling container run")
                        proc.kill()
                        proc.communicate()
                        raise PipelineCancelledError() from None
                    if deadline is not None and time.monotonic() >= deadline:
                        proc.kill()
                        proc.communicate()
                        raise ExecutionError(
                            f"Container run timed out after {timeout} seconds",
                            code="timeout",
                        ) from None
        except BaseException:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            raise

        if proc.returncode != 0:
            message = f"Container command failed with exit code {proc.returncode}"
            logger.error("%s: %s", message, err.strip())
            raise ExecutionError(
                message,
                exit_code=proc.returncode,
                stderr=err,
                code=EXECUTION_ERROR,
            )

        return out


__all__ = [
    "CACHE_VOLUME_LABEL",
    "BuildClient",
    "DockerClient",
    "render_script",
]
