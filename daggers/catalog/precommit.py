"""Pre-commit runner.

Runs `pre-commit run --all-files` in a container with the pre-commit
home directory on a cache volume keyed on .pre-commit-config.yaml, so
hook environments are reused until the config changes.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from daggers.cache.volumes import cache_volume_for_files
from daggers.containers.customizers import download_file, env_variables, mounted_cache
from daggers.containers.pipeline import customized_container_from_image
from daggers.engine.container import Container
from daggers.options import Option, init_config, set_field
from daggers.runtime import Runtime

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".pre-commit-config.yaml"
CACHE_DIR = "/pre-commit-cache"
PRECOMMIT_HOME_ENV_VAR = "PRE_COMMIT_HOME"
CACHE_KEY_PREFIX = "pre-commit-"
PRE_COMMIT_URL_TEMPLATE = (
    "https://github.com/pre-commit/pre-commit/releases/download/"
    "v{version}/pre-commit-{version}.pyz"
)


class PrecommitConfig(BaseSettings):
    """Pre-commit runner configuration.

    Defaults can be overridden with PRECOMMIT_* environment variables,
    then with options.
    """

    model_config = SettingsConfigDict(
        env_prefix="PRECOMMIT_",
        extra="ignore",
        frozen=True,
    )

    base_image: str = Field(
        default="python:3.12.0a1-bullseye",
        description="Image pre-commit runs in; must provide python and git",
    )
    pre_commit_version: str = Field(
        default="2.20.0",
        description="Released pre-commit zipapp version",
    )
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Extra environment variables for the container",
    )
    container_customizers: tuple[Any, ...] = Field(
        default=(),
        exclude=True,
        description="Customizers applied after env and before pre-commit setup",
    )


def base_image(image: str) -> Option[PrecommitConfig]:
    """Set the image pre-commit runs in."""
    return set_field("base_image", image)


def pre_commit_version(version: str) -> Option[PrecommitConfig]:
    """Set the pre-commit release to download."""
    return set_field("pre_commit_version", version)


def with_env(env: dict[str, str]) -> Option[PrecommitConfig]:
    """Add environment variables; later options win on conflicting keys."""

    def _apply(cfg: PrecommitConfig) -> PrecommitConfig:
        return cfg.model_copy(update={"env": {**cfg.env, **env}})

    return _apply


def with_container_customizers(*customizers: Any) -> Option[PrecommitConfig]:
    """Append customizers applied to the container before pre-commit setup."""

    def _apply(cfg: PrecommitConfig) -> PrecommitConfig:
        return cfg.model_copy(
            update={"container_customizers": cfg.container_customizers + customizers}
        )

    return _apply


def prepare(runtime: Runtime, *opts: Option[PrecommitConfig]) -> Container:
    """Prepare the pre-commit container without running it.

    Args:
        runtime: Runtime for this invocation.
        *opts: Configuration options.

    Returns:
        Container whose last exec step runs pre-commit.
    """
    cfg = init_config(PrecommitConfig, *opts)

    url = PRE_COMMIT_URL_TEMPLATE.format(version=cfg.pre_commit_version)
    dest = f"/usr/local/bin/pre-commit-{cfg.pre_commit_version}.pyz"

    cache_vol = cache_volume_for_files(
        runtime.client,
        CACHE_KEY_PREFIX,
        runtime.workdir,
        CONFIG_FILE_NAME,
        cancel_event=runtime.cancel_event,
    )

    customizers = [
        env_variables(cfg.env),
        *cfg.container_customizers,
        download_file(url, dest),
        mounted_cache(cache_vol, CACHE_DIR, PRECOMMIT_HOME_ENV_VAR),
    ]

    container = customized_container_from_image(
        runtime, cfg.base_image, True, *customizers
    )

    return container.with_exec(
        ["python", dest, "run", "--all-files", "--show-diff-on-failure"]
    )


def run(
    runtime: Runtime,
    *opts: Option[PrecommitConfig],
    timeout: float | None = None,
) -> str:
    """Run the pre-commit checks.

    Args:
        runtime: Runtime for this invocation.
        *opts: Configuration options.
        timeout: Container run timeout in seconds.

    Returns:
        pre-commit output.

    Raises:
        MissingInputsError: If .pre-commit-config.yaml does not exist.
        CustomizationError: If a customizer fails.
        ExecutionError: If the checks fail.
    """
    container = prepare(runtime, *opts)
    logger.info("Running pre-commit in %s", container.image)
    return runtime.stdout(container, timeout=timeout)


__all__ = [
    "CONFIG_FILE_NAME",
    "PrecommitConfig",
    "base_image",
    "pre_commit_version",
    "prepare",
    "run",
    "with_container_customizers",
    "with_env",
]
