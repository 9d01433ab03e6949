"""Error types for daggers.

Every error carries a stable ``code`` for structured handling. Errors are
chained to their cause with ``raise ... from`` and are never recovered
silently; the CLI surfaces the message and exits non-zero.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

# Error code constants
MISSING_INPUTS = "missing_inputs"
READ_ERROR = "read_error"
VOLUME_RESOLUTION_ERROR = "volume_resolution_error"
IMAGE_RESOLUTION_ERROR = "image_resolution_error"
CUSTOMIZATION_ERROR = "customization_error"
EXECUTION_ERROR = "execution_error"
CANCELLED = "cancelled"
MISSING_SECRET = "missing_secret"
CONFIG_ERROR = "config_error"


class DaggersError(Exception):
    """Base class for all daggers errors."""

    def __init__(self, message: str, code: str = "daggers_error") -> None:
        """Initialize DaggersError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


class MissingInputsError(DaggersError):
    """Raised when no tracked file exists to derive a cache key from."""

    def __init__(self, root: Path, names: Sequence[str]) -> None:
        """Initialize MissingInputsError.

        Args:
            root: Directory the file names are relative to.
            names: The file names that were not found.
        """
        super().__init__(
            f"Missing cache input files in {root}: {', '.join(names)}",
            code=MISSING_INPUTS,
        )
        self.root = root
        self.names = list(names)


class InputReadError(DaggersError):
    """Raised when a tracked file exists but cannot be read."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to read {path}: {reason}", code=READ_ERROR)
        self.path = path


class VolumeResolutionError(DaggersError):
    """Raised when the build client cannot resolve or create a cache volume."""

    def __init__(self, name: str, reason: str) -> None:
        super().__init__(
            f"Failed to resolve cache volume {name}: {reason}",
            code=VOLUME_RESOLUTION_ERROR,
        )
        self.name = name


class ImageResolutionError(DaggersError):
    """Raised when the build client cannot pull or inspect a base image."""

    def __init__(self, image: str, reason: str) -> None:
        super().__init__(
            f"Failed to resolve image {image}: {reason}",
            code=IMAGE_RESOLUTION_ERROR,
        )
        self.image = image


class CustomizationError(DaggersError):
    """Raised when a customizer fails.

    Attributes:
        index: Position of the failing customizer in the applied list.
        step: Name of the failing customizer.
        cause: The underlying exception.
    """

    def __init__(self, index: int, step: str, cause: BaseException) -> None:
        super().__init__(
            f"Customizer #{index} ({step}) failed: {cause}",
            code=CUSTOMIZATION_ERROR,
        )
        self.index = index
        self.step = step
        self.cause = cause


class ExecutionError(DaggersError):
    """Raised when the container command cannot start or exits non-zero."""

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        stderr: str = "",
        code: str = EXECUTION_ERROR,
    ) -> None:
        """Initialize ExecutionError.

        Args:
            message: Error description.
            exit_code: Exit code of the container process, if it ran.
            stderr: Captured standard error of the container process.
            code: Error code for structured error handling.
        """
        super().__init__(message, code=code)
        self.exit_code = exit_code
        self.stderr = stderr


class PipelineCancelledError(DaggersError):
    """Raised when the caller cancels a pipeline invocation."""

    def __init__(self, message: str = "Pipeline invocation was cancelled") -> None:
        super().__init__(message, code=CANCELLED)


class MissingSecretError(DaggersError):
    """Raised when a required host secret was not provided."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Secret {name} is not available; set it in the host environment",
            code=MISSING_SECRET,
        )
        self.name = name


class ConfigurationError(DaggersError):
    """Raised when configuration from the environment or options is invalid."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code=CONFIG_ERROR)


__all__ = [
    "CANCELLED",
    "CONFIG_ERROR",
    "CUSTOMIZATION_ERROR",
    "EXECUTION_ERROR",
    "IMAGE_RESOLUTION_ERROR",
    "MISSING_INPUTS",
    "MISSING_SECRET",
    "READ_ERROR",
    "VOLUME_RESOLUTION_ERROR",
    "ConfigurationError",
    "CustomizationError",
    "DaggersError",
    "ExecutionError",
    "ImageResolutionError",
    "InputReadError",
    "MissingInputsError",
    "MissingSecretError",
    "PipelineCancelledError",
    "VolumeResolutionError",
]
