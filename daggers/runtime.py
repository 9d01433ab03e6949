"""Runtime context shared by all customizers of one pipeline invocation."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from daggers.engine.client import BuildClient
from daggers.engine.container import Container, Secret
from daggers.errors import MissingSecretError, PipelineCancelledError

logger = logging.getLogger(__name__)

DEFAULT_MOUNT_PATH = "/src"
DEFAULT_SECRET_ENV_VARS = ("GITHUB_TOKEN",)


@dataclass(frozen=True)
class Runtime:
    """Build client, working directory and secrets for one invocation.

    Attributes:
        client: Build client used to resolve volumes and run containers.
        workdir: Host working directory tracked files are read from.
        mount_path: Path the working directory is mounted at in containers.
        secrets: Host secrets read once at construction, keyed by name.
        cancel_event: Set by the caller to abort in-flight work.
    """

    client: BuildClient
    workdir: Path
    mount_path: str = DEFAULT_MOUNT_PATH
    secrets: Mapping[str, Secret] = field(
        default_factory=lambda: MappingProxyType({})
    )
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @classmethod
    def create(
        cls,
        client: BuildClient,
        workdir: Path | None = None,
        mount_path: str = DEFAULT_MOUNT_PATH,
        secret_env_vars: Iterable[str] = DEFAULT_SECRET_ENV_VARS,
        cancel_event: threading.Event | None = None,
    ) -> Runtime:
        """Create a runtime, reading host secrets once.

        Args:
            client: Build client.
            workdir: Working directory (defaults to the current directory).
            mount_path: Path the working directory is mounted at in containers.
            secret_env_vars: Host environment variables to wrap as secrets.
            cancel_event: Cancellation event shared with the caller.

        Returns:
            Runtime instance.
        """
        secrets: dict[str, Secret] = {}
        for name in secret_env_vars:
            secret = client.host_env_secret(name)
            if secret is not None:
                secrets[name] = secret

        root = (workdir or Path.cwd()).resolve()
        logger.debug(
            "Runtime created for %s with secrets: %s", root, sorted(secrets) or "none"
        )
        return cls(
            client=client,
            workdir=root,
            mount_path=mount_path,
            secrets=MappingProxyType(secrets),
            cancel_event=cancel_event or threading.Event(),
        )

    def secret(self, name: str) -> Secret:
        """Return a host secret by name.

        Raises:
            MissingSecretError: If the host did not provide the secret.
        """
        try:
            return self.secrets[name]
        except KeyError:
            raise MissingSecretError(name) from None

    @property
    def cancelled(self) -> bool:
        """Whether the invocation has been cancelled."""
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Cancel the invocation."""
        self.cancel_event.set()

    def raise_if_cancelled(self) -> None:
        """Raise PipelineCancelledError if the invocation has been cancelled."""
        if self.cancel_event.is_set():
            raise PipelineCancelledError()

    def stdout(self, container: Container, timeout: float | None = None) -> str:
        """Run a container through the client, observing cancellation."""
        self.raise_if_cancelled()
        return self.client.stdout(
            container, cancel_event=self.cancel_event, timeout=timeout
        )


__all__ = ["DEFAULT_MOUNT_PATH", "DEFAULT_SECRET_ENV_VARS", "Runtime"]
