"""Tests for engine/container.py module.

Tests that every transformation returns a new container and leaves the
original untouched.
"""

from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest
from pydantic import SecretStr

from daggers.engine.container import CacheMount, CacheVolume, Container, Secret


@pytest.fixture
def base() -> Container:
    """Base container for an image."""
    return Container(image="alpine:3.19")


class TestImmutability:
    """Tests for the immutable container contract."""

    def test_frozen(self, base):
        """Containers cannot be mutated in place."""
        with pytest.raises(FrozenInstanceError):
            base.image = "debian"  # type: ignore[misc]

    def test_with_methods_return_new_values(self, base):
        """Transformations should leave the receiver unchanged."""
        changed = base.with_env_variable("A", "1").with_exec(["true"])

        assert base.env == ()
        assert base.steps == ()
        assert changed is not base

    def test_revision_increments(self, base):
        """Each transformation bumps the revision."""
        c1 = base.with_env_variable("A", "1")
        c2 = c1.with_workdir("/src")

        assert (base.revision, c1.revision, c2.revision) == (0, 1, 2)


class TestEnvVariables:
    """Tests for environment variable handling."""

    def test_later_value_wins(self, base):
        """Setting a key twice keeps the later value once."""
        c = base.with_env_variable("A", "1").with_env_variable("A", "2")

        assert c.env_variable("A") == "2"
        assert c.env == (("A", "2"),)

    def test_unset_variable_is_none(self, base):
        """Unknown variables return None."""
        assert base.env_variable("PATH") is None

    def test_empty_name_rejected(self, base):
        """Empty variable names are invalid."""
        with pytest.raises(ValueError):
            base.with_env_variable("", "x")

    def test_env_dict(self, base):
        """env_dict should reflect all plain variables."""
        c = base.with_env_variable("A", "1").with_env_variable("B", "2")

        assert c.env_dict() == {"A": "1", "B": "2"}

    def test_image_env_used_at_run_time(self):
        """Variables from the image are visible until overridden."""
        c = Container(image="rust:1.75", image_env=(("PATH", "/usr/local/cargo/bin"),))

        assert c.env_variable("PATH") is None
        assert c.effective_env_variable("PATH") == "/usr/local/cargo/bin"

        c = c.with_env_variable("PATH", "/bin")

        assert c.effective_env_variable("PATH") == "/bin"

    def test_image_env_not_in_plain_env(self):
        """The image environment is not copied into explicit variables."""
        c = Container(image="rust:1.75", image_env=(("CARGO_HOME", "/cargo"),))

        assert c.env_dict() == {}


class TestSecrets:
    """Tests for secret variables."""

    def test_secret_replaces_plain_variable(self, base):
        """A secret with the same name removes the plain variable."""
        secret = Secret("TOKEN", SecretStr("s3cr3t"))
        c = base.with_env_variable("TOKEN", "plain").with_secret_variable(
            "TOKEN", secret
        )

        assert c.env_variable("TOKEN") is None
        assert [s.name for s in c.secrets] == ["TOKEN"]

    def test_plain_variable_replaces_secret(self, base):
        """A plain variable with the same name removes the secret."""
        secret = Secret("TOKEN", SecretStr("s3cr3t"))
        c = base.with_secret_variable("TOKEN", secret).with_env_variable(
            "TOKEN", "plain"
        )

        assert c.secrets == ()

    def test_secret_repr_hides_value(self):
        """The plaintext should never show in repr or str."""
        secret = Secret("TOKEN", SecretStr("s3cr3t"))

        assert "s3cr3t" not in repr(secret)
        assert "s3cr3t" not in str(secret)
        container = Container(image="x").with_secret_variable("T", secret)
        assert "s3cr3t" not in repr(container)


class TestMounts:
    """Tests for cache and directory mounts."""

    def test_remount_replaces(self, base):
        """Mounting the same path twice keeps only the later volume."""
        c = base.with_mounted_cache("/cache", CacheVolume("one")).with_mounted_cache(
            "/cache", CacheVolume("two")
        )

        assert c.mounts == (CacheMount("/cache", CacheVolume("two")),)

    def test_distinct_paths_stack(self, base):
        """Different paths keep separate mounts."""
        c = base.with_mounted_cache("/a", CacheVolume("one")).with_mounted_cache(
            "/b", CacheVolume("one")
        )

        assert [m.path for m in c.mounts] == ["/a", "/b"]

    def test_directory_mount(self, base, tmp_path):
        """Directory mounts replace by path."""
        c = base.with_mounted_directory("/src", Path("/old")).with_mounted_directory(
            "/src", tmp_path
        )

        assert len(c.directories) == 1
        assert c.directories[0].source == tmp_path

    def test_cache_replaces_directory_at_same_path(self, base, tmp_path):
        """A cache mounted over a directory mount takes its place."""
        c = base.with_mounted_directory("/src", tmp_path).with_mounted_cache(
            "/src", CacheVolume("one")
        )

        assert c.directories == ()
        assert c.mounts == (CacheMount("/src", CacheVolume("one")),)

    def test_directory_replaces_cache_at_same_path(self, base, tmp_path):
        """A directory mounted over a cache mount takes its place."""
        c = base.with_mounted_cache("/src", CacheVolume("one")).with_mounted_directory(
            "/src", tmp_path
        )

        assert c.mounts == ()
        assert c.directories[0].path == "/src"


class TestExec:
    """Tests for exec steps."""

    def test_steps_kept_in_order(self, base):
        """Steps should run in the order they were added."""
        c = base.with_exec(["echo", "1"]).with_exec(("echo", "2"))

        assert c.steps == (("echo", "1"), ("echo", "2"))

    def test_empty_step_rejected(self, base):
        """A step needs at least a program name."""
        with pytest.raises(ValueError):
            base.with_exec([])
