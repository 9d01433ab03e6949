"""Customization pipeline.

Customizers are applied strictly left to right, each receiving the
container returned by the previous one. The first failure stops the
pipeline and is reported as a CustomizationError naming the step.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from daggers.engine.container import Container
from daggers.errors import CustomizationError, PipelineCancelledError
from daggers.runtime import Runtime

logger = logging.getLogger(__name__)

CustomizerFn = Callable[[Runtime, Container], Container]


@dataclass(frozen=True)
class Customizer:
    """A named container transformation.

    Attributes:
        name: Human-readable step name used in errors and logs.
        fn: The transformation; raises on failure.
    """

    name: str
    fn: CustomizerFn

    def __call__(self, runtime: Runtime, container: Container) -> Container:
        result = self.fn(runtime, container)
        if not isinstance(result, Container):
            raise TypeError(
                f"customizer {self.name} returned {type(result).__name__}, "
                "expected Container"
            )
        return result


def describe(customizer: CustomizerFn) -> str:
    """Return the step name of a customizer."""
    name = getattr(customizer, "name", None)
    if isinstance(name, str):
        return name
    return getattr(customizer, "__name__", repr(customizer))


def apply_customizations(
    runtime: Runtime,
    container: Container,
    *customizers: CustomizerFn,
) -> Container:
    """Apply customizers in order.

    Args:
        runtime: Runtime shared by all customizers.
        container: Base container.
        *customizers: Customizers applied left to right.

    Returns:
        The container returned by the last customizer, or the base
        container itself if none were given.

    Raises:
        CustomizationError: If a customizer fails; chained to the cause.
        PipelineCancelledError: If the invocation is cancelled.
    """
    for index, customizer in enumerate(customizers):
        runtime.raise_if_cancelled()
        step = describe(customizer)
        logger.debug("Applying customizer #%d: %s", index, step)

        try:
            container = customizer(runtime, container)
        except PipelineCancelledError:
            raise
        except Exception as e:
            logger.debug("Customizer #%d (%s) failed: %s", index, step, e)
            raise CustomizationError(index, step, e) from e

    return container


def customized_container_from_image(
    runtime: Runtime,
    image: str,
    mount_workdir: bool,
    *customizers: CustomizerFn,
) -> Container:
    """Create a container from an image and apply customizers.

    Args:
        runtime: Runtime shared by all customizers.
        image: Base image reference.
        mount_workdir: Mount the runtime workdir and use it as the
            container working directory.
        *customizers: Customizers applied left to right.

    Returns:
        The customized container.
    """
    container = runtime.client.container(image)

    if mount_workdir:
        container = container.with_mounted_directory(
            runtime.mount_path, runtime.workdir
        ).with_workdir(runtime.mount_path)

    return apply_customizations(runtime, container, *customizers)


__all__ = [
    "Customizer",
    "CustomizerFn",
    "apply_customizations",
    "customized_container_from_image",
    "describe",
]
