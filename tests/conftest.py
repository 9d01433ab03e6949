"""Shared fixtures for daggers tests."""

from pathlib import Path

import pytest

from daggers.engine.client import DockerClient
from daggers.runtime import Runtime


@pytest.fixture
def client() -> DockerClient:
    """Dry-run docker client with a fake host environment."""
    return DockerClient(environ={"GITHUB_TOKEN": "ghp_test_token"}, dry_run=True)


@pytest.fixture
def runtime(tmp_path: Path, client: DockerClient) -> Runtime:
    """Runtime rooted at a temporary working directory."""
    return Runtime.create(client, workdir=tmp_path)


@pytest.fixture
def go_project(tmp_path: Path) -> Path:
    """Working directory with go.mod and an empty go.sum."""
    (tmp_path / "go.mod").write_text("module x")
    (tmp_path / "go.sum").write_text("")
    return tmp_path
