"""Semantic version helper.

Runs svu (https://github.com/caarlos0/svu) against the git tags of the
working directory to compute the next, current or bumped version.
"""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from daggers.containers.pipeline import customized_container_from_image
from daggers.engine.container import Container
from daggers.options import Option, init_config, set_field
from daggers.runtime import Runtime
from daggers.types import SvuCommand, TagMode

logger = logging.getLogger(__name__)

SVU_IMAGE = "ghcr.io/caarlos0/svu"


class SvuConfig(BaseSettings):
    """svu configuration.

    Defaults can be overridden with SVU_* environment variables, then with
    options.
    """

    model_config = SettingsConfigDict(env_prefix="SVU_", extra="ignore", frozen=True)

    version: str = Field(default="v1.9.0", description="svu image tag")
    metadata: bool = Field(
        default=True, description="Include pre-release and build metadata"
    )
    prerelease: bool = Field(default=True, description="Include pre-release metadata")
    build: bool = Field(default=True, description="Include build metadata")
    command: SvuCommand = Field(default=SvuCommand.NEXT, description="svu sub-command")
    pattern: str = Field(default="", description="Tag pattern, svu default '*'")
    prefix: str = Field(default="", description="Tag prefix, svu default 'v'")
    suffix: str = Field(default="", description="Version suffix")
    tag_mode: TagMode = Field(
        default=TagMode.ALL_BRANCHES, description="Which branches tags are read from"
    )


def svu_version(version: str) -> Option[SvuConfig]:
    """Set the svu image tag, e.g. 'v1.9.0'."""
    return set_field("version", version)


def with_metadata(enabled: bool) -> Option[SvuConfig]:
    """Include pre-release and build metadata in the version."""
    return set_field("metadata", enabled)


def with_prerelease(enabled: bool) -> Option[SvuConfig]:
    """Include pre-release metadata in the version."""
    return set_field("prerelease", enabled)


def with_build(enabled: bool) -> Option[SvuConfig]:
    """Include build metadata in the version."""
    return set_field("build", enabled)


def with_command(command: SvuCommand | str) -> Option[SvuConfig]:
    """Set the svu sub-command.

    Raises:
        ValueError: If the command is not a known svu sub-command.
    """
    return set_field("command", SvuCommand(command))


def with_pattern(pattern: str) -> Option[SvuConfig]:
    """Set the pattern used to find tags."""
    return set_field("pattern", pattern)


def with_prefix(prefix: str) -> Option[SvuConfig]:
    """Set the tag prefix."""
    return set_field("prefix", prefix)


def with_suffix(suffix: str) -> Option[SvuConfig]:
    """Set the version suffix."""
    return set_field("suffix", suffix)


def with_tag_mode(tag_mode: TagMode | str) -> Option[SvuConfig]:
    """Set the tag discovery mode.

    Raises:
        ValueError: If the mode is not a known tag mode.
    """
    return set_field("tag_mode", TagMode(tag_mode))


def compose_svu_args(cfg: SvuConfig) -> list[str]:
    """Compose svu command line arguments from a configuration.

    Args:
        cfg: svu configuration.

    Returns:
        Arguments, starting with the sub-command.
    """
    args = [cfg.command.value]

    for flag, enabled in (
        ("metadata", cfg.metadata),
        ("pre-release", cfg.prerelease),
        ("build", cfg.build),
    ):
        args.append(f"--{flag}" if enabled else f"--no-{flag}")

    # Empty values keep svu's own defaults
    if cfg.pattern:
        args.append(f"--pattern={cfg.pattern}")
    if cfg.prefix:
        args.append(f"--prefix={cfg.prefix}")
    if cfg.suffix:
        args.append(f"--suffix={cfg.suffix}")

    args.append(f"--tag-mode={cfg.tag_mode.value}")
    return args


def prepare(runtime: Runtime, *opts: Option[SvuConfig]) -> Container:
    """Prepare the svu container without running it."""
    cfg = init_config(SvuConfig, *opts)

    container = customized_container_from_image(
        runtime, f"{SVU_IMAGE}:{cfg.version}", True
    )
    return container.with_exec(
        ["git", "config", "--global", "--add", "safe.directory", runtime.mount_path]
    ).with_exec(["svu", *compose_svu_args(cfg)])


def run(
    runtime: Runtime,
    *opts: Option[SvuConfig],
    timeout: float | None = None,
) -> str:
    """Compute a semantic version from the workdir's git tags.

    Returns:
        The version string printed by svu.
    """
    container = prepare(runtime, *opts)
    output = runtime.stdout(container, timeout=timeout)
    version = output.strip()
    logger.info("svu computed version %s", version)
    return version


__all__ = [
    "SVU_IMAGE",
    "SvuConfig",
    "compose_svu_args",
    "prepare",
    "run",
    "svu_version",
    "with_build",
    "with_command",
    "with_metadata",
    "with_pattern",
    "with_prefix",
    "with_prerelease",
    "with_suffix",
    "with_tag_mode",
]
