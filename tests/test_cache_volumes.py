"""Tests for cache/volumes.py module.

Tests cache key derivation and cache volume resolution through a client.
"""

from unittest.mock import MagicMock

import pytest

from daggers.cache.hasher import hash_files
from daggers.cache.volumes import (
    cache_volume_for_files,
    compute_cache_key,
    validate_prefix,
)
from daggers.engine.container import CacheVolume
from daggers.errors import MissingInputsError, VolumeResolutionError


class TestComputeCacheKey:
    """Tests for compute_cache_key function."""

    def test_key_is_prefix_plus_digest(self, go_project):
        """Key should be the prefix followed by the hex digest."""
        key = compute_cache_key("go-build-", go_project, "go.mod", "go.sum")

        assert key == "go-build-" + hash_files(go_project, "go.mod", "go.sum")

    def test_different_prefix_different_key(self, go_project):
        """Different prefixes over the same files should differ."""
        build = compute_cache_key("go-build-", go_project, "go.mod", "go.sum")
        mod = compute_cache_key("go-mod-", go_project, "go.mod", "go.sum")

        assert build != mod
        assert build.removeprefix("go-build-") == mod.removeprefix("go-mod-")

    def test_empty_prefix(self, go_project):
        """An empty prefix gives the bare digest."""
        assert compute_cache_key("", go_project, "go.mod") == hash_files(
            go_project, "go.mod"
        )


class TestValidatePrefix:
    """Tests for validate_prefix function."""

    @pytest.mark.parametrize("prefix", ["go-build-", "pre-commit-", "a.b_c", "x"])
    def test_valid_prefixes(self, prefix):
        """Volume-safe prefixes should pass."""
        assert validate_prefix(prefix) == prefix

    @pytest.mark.parametrize("prefix", ["-go", "go build", "go/build", "_x"])
    def test_invalid_prefixes(self, prefix):
        """Prefixes that cannot start a volume name should be rejected."""
        with pytest.raises(ValueError):
            validate_prefix(prefix)


class TestCacheVolumeForFiles:
    """Tests for cache_volume_for_files function."""

    def test_same_inputs_same_volume(self, client, go_project):
        """Resolving twice with unchanged files yields the same volume."""
        first = cache_volume_for_files(
            client, "go-build-", go_project, "go.mod", "go.sum"
        )
        second = cache_volume_for_files(
            client, "go-build-", go_project, "go.mod", "go.sum"
        )

        assert first == second
        assert first.name.startswith("go-build-")

    def test_content_change_changes_volume(self, client, go_project):
        """Changing go.mod should resolve a different volume next time."""
        before = cache_volume_for_files(
            client, "go-build-", go_project, "go.mod", "go.sum"
        )
        (go_project / "go.mod").write_text("module x\n\ngo 1.21")
        after = cache_volume_for_files(
            client, "go-build-", go_project, "go.mod", "go.sum"
        )

        assert before != after

    def test_client_asked_every_time(self, go_project):
        """The resolver should not memoize volume lookups."""
        client = MagicMock()
        client.cache_volume.side_effect = lambda name: CacheVolume(name)

        cache_volume_for_files(client, "go-mod-", go_project, "go.mod")
        cache_volume_for_files(client, "go-mod-", go_project, "go.mod")

        assert client.cache_volume.call_count == 2
        names = {c.args[0] for c in client.cache_volume.call_args_list}
        assert len(names) == 1

    def test_missing_inputs_propagate(self, client, tmp_path):
        """Hasher failures should propagate unchanged."""
        with pytest.raises(MissingInputsError):
            cache_volume_for_files(client, "go-build-", tmp_path, "go.mod", "go.sum")

    def test_missing_inputs_do_not_reach_client(self, tmp_path):
        """No volume should be requested without a cache key."""
        client = MagicMock()

        with pytest.raises(MissingInputsError):
            cache_volume_for_files(client, "go-build-", tmp_path, "go.mod")

        client.cache_volume.assert_not_called()

    def test_client_volume_error_propagates(self, go_project):
        """VolumeResolutionError from the client should pass through."""
        client = MagicMock()
        error = VolumeResolutionError("go-build-x", "daemon not running")
        client.cache_volume.side_effect = error

        with pytest.raises(VolumeResolutionError) as exc_info:
            cache_volume_for_files(client, "go-build-", go_project, "go.mod")

        assert exc_info.value is error

    def test_other_client_errors_wrapped(self, go_project):
        """Unexpected client failures should become VolumeResolutionError."""
        client = MagicMock()
        client.cache_volume.side_effect = RuntimeError("boom")

        with pytest.raises(VolumeResolutionError) as exc_info:
            cache_volume_for_files(client, "go-build-", go_project, "go.mod")

        assert exc_info.value.code == "volume_resolution_error"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert exc_info.value.name.startswith("go-build-")
