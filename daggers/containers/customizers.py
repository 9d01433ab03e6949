"""Customizer primitives.

Each function here records its arguments and returns a Customizer.
Nothing touches the network when a customizer is built or applied;
downloads and installs are exec steps that run with the container.

Installers require "curl" and "tar" in the base image.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Mapping
from pathlib import PurePosixPath
from urllib.parse import urlparse

from daggers.cache.volumes import cache_volume_for_files
from daggers.containers.pipeline import Customizer, apply_customizations
from daggers.engine.container import CacheVolume, Container
from daggers.runtime import Runtime

logger = logging.getLogger(__name__)

# PATH of the stock Linux images, used when neither the container nor the
# image sets one
DEFAULT_PATH = "/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"

# Restrict fetches and redirects to HTTPS and fail on HTTP errors
CURL_ARGS = (
    "curl",
    "--proto",
    "=https",
    "--proto-redir",
    "=https",
    "--location",
    "--fail",
    "--silent",
    "--show-error",
)

DEFAULT_GO_VERSION = "1.19.3"
GO_URL_TEMPLATE = "https://golang.org/dl/go{version}.linux-amd64.tar.gz"
GO_INSTALL_DIR = "/usr/local"
GO_BIN_DIR = "/usr/local/go/bin"

GO_CACHE_FILES = ("go.mod", "go.sum")
GO_BUILD_CACHE_DIR = "/go/build-cache"
GO_MOD_CACHE_DIR = "/go/mod-cache"

DEFAULT_GH_VERSION = "2.20.2"
GH_URL_TEMPLATE = (
    "https://github.com/cli/cli/releases/download/v{version}/"
    "gh_{version}_linux_amd64.tar.gz"
)
GH_TOKEN_ENV_VAR = "GITHUB_TOKEN"


def _validate_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme != "https" or not parsed.netloc:
        raise ValueError(f"download URL must be an https URL, got '{url}'")
    return url


def env_variables(env: Mapping[str, str]) -> Customizer:
    """Set environment variables, overwriting previous values."""
    items = dict(env)

    def _apply(_: Runtime, c: Container) -> Container:
        for key, value in items.items():
            c = c.with_env_variable(key, value)
        return c

    return Customizer("env_variables", _apply)


def append_to_path(path: str) -> Customizer:
    """Append a directory to the PATH environment variable.

    Extends the PATH the container would run with: an explicitly set PATH,
    else the image's own, else DEFAULT_PATH. If the directory is already on
    PATH the container is returned unchanged.
    """

    def _apply(_: Runtime, c: Container) -> Container:
        existing = c.effective_env_variable("PATH") or DEFAULT_PATH
        if path in existing.split(":"):
            return c
        return c.with_env_variable("PATH", f"{existing}:{path}")

    return Customizer(f"append_to_path({path})", _apply)


def mounted_cache(
    volume: CacheVolume,
    mount_path: str,
    env_var: str | None = None,
) -> Customizer:
    """Mount a cache volume, optionally pointing an env variable at it.

    Args:
        volume: Resolved cache volume.
        mount_path: Absolute path inside the container.
        env_var: Environment variable to set to mount_path.
    """
    if not PurePosixPath(mount_path).is_absolute():
        raise ValueError(f"mount path must be absolute, got '{mount_path}'")

    def _apply(_: Runtime, c: Container) -> Container:
        c = c.with_mounted_cache(mount_path, volume)
        if env_var:
            c = c.with_env_variable(env_var, mount_path)
        return c

    return Customizer(f"mounted_cache({volume.name})", _apply)


def mounted_go_cache(path: str = "") -> Customizer:
    """Mount Go build and module caches keyed on go.mod and go.sum.

    The volumes are resolved when the customizer is applied, from the files
    under `path` relative to the runtime workdir (default: the workdir).
    Both go.mod and go.sum must exist.
    """

    def _apply(runtime: Runtime, c: Container) -> Container:
        cache_dir = runtime.workdir / (path or ".")
        build_cache = cache_volume_for_files(
            runtime.client,
            "go-build-",
            cache_dir,
            *GO_CACHE_FILES,
            cancel_event=runtime.cancel_event,
            strict=True,
        )
        mod_cache = cache_volume_for_files(
            runtime.client,
            "go-mod-",
            cache_dir,
            *GO_CACHE_FILES,
            cancel_event=runtime.cancel_event,
            strict=True,
        )
        return (
            c.with_env_variable("GOCACHE", GO_BUILD_CACHE_DIR)
            .with_mounted_cache(GO_BUILD_CACHE_DIR, build_cache)
            .with_env_variable("GOMODCACHE", GO_MOD_CACHE_DIR)
            .with_mounted_cache(GO_MOD_CACHE_DIR, mod_cache)
        )

    return Customizer("mounted_go_cache", _apply)


def download_file(url: str, dest: str) -> Customizer:
    """Download a URL to a file inside the container.

    Only records an exec step; a failed fetch fails the container run.
    """
    _validate_url(url)
    cmd = [*CURL_ARGS, url, "--output", dest]

    def _apply(_: Runtime, c: Container) -> Container:
        return c.with_exec(cmd)

    return Customizer(f"download_file({url})", _apply)


def download_executable_file(url: str, dest: str) -> Customizer:
    """Download a URL to a file inside the container and make it executable."""
    download = download_file(url, dest)

    def _apply(runtime: Runtime, c: Container) -> Container:
        c = download(runtime, c)
        return c.with_exec(["chmod", "755", dest])

    return Customizer(f"download_executable_file({url})", _apply)


def install_go(version: str = "") -> Customizer:
    """Install Go into /usr/local and add it to PATH.

    Args:
        version: Go version (defaults to DEFAULT_GO_VERSION).
    """
    version = version or DEFAULT_GO_VERSION
    url = GO_URL_TEMPLATE.format(version=version)
    script = f"{shlex.join([*CURL_ARGS, url])} | tar -C {GO_INSTALL_DIR} -xz"
    add_to_path = append_to_path(GO_BIN_DIR)

    def _apply(runtime: Runtime, c: Container) -> Container:
        c = c.with_exec(["sh", "-ec", script])
        return add_to_path(runtime, c)

    return Customizer(f"install_go({version})", _apply)


def install_github_cli(version: str = "", *extensions: str) -> Customizer:
    """Install the GitHub CLI and the given extensions.

    The host GITHUB_TOKEN is injected as a secret variable, never as a plain
    environment variable. Extensions are installed one exec step each.

    Args:
        version: gh version (defaults to DEFAULT_GH_VERSION).
        *extensions: Extensions to install, e.g. 'owner/gh-ext'.
    """
    version = version or DEFAULT_GH_VERSION
    url = GH_URL_TEMPLATE.format(version=version)
    dest = "/tmp/gh_linux_amd64.tar.gz"
    extract_dir = "/tmp"
    cli_source_path = f"/tmp/gh_{version}_linux_amd64/bin/gh"
    cli_target_path = "/usr/local/bin/gh"
    download = download_file(url, dest)

    def _apply(runtime: Runtime, c: Container) -> Container:
        c = apply_customizations(runtime, c, download)

        token = runtime.secret(GH_TOKEN_ENV_VAR)
        c = (
            c.with_secret_variable(GH_TOKEN_ENV_VAR, token)
            .with_exec(["tar", "-xf", dest, "-C", extract_dir])
            .with_exec(["mv", cli_source_path, cli_target_path])
            .with_exec(["sh", "-ec", "rm -rf /tmp/*"])
        )

        for extension in extensions:
            c = c.with_exec(["gh", "extension", "install", extension])

        return c

    return Customizer(f"install_github_cli({version})", _apply)


__all__ = [
    "DEFAULT_GH_VERSION",
    "DEFAULT_GO_VERSION",
    "DEFAULT_PATH",
    "append_to_path",
    "download_executable_file",
    "download_file",
    "env_variables",
    "install_github_cli",
    "install_go",
    "mounted_cache",
    "mounted_go_cache",
]
