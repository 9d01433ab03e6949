"""Container customization module.

This module handles:
- Customizer primitives (env variables, caches, downloads, installers)
- Applying customizers to a base container in order
"""

from daggers.containers.customizers import (
    append_to_path,
    download_executable_file,
    download_file,
    env_variables,
    install_github_cli,
    install_go,
    mounted_cache,
    mounted_go_cache,
)
from daggers.containers.pipeline import (
    Customizer,
    apply_customizations,
    customized_container_from_image,
)

__all__ = [
    "Customizer",
    "append_to_path",
    "apply_customizations",
    "customized_container_from_image",
    "download_executable_file",
    "download_file",
    "env_variables",
    "install_github_cli",
    "install_go",
    "mounted_cache",
    "mounted_go_cache",
]
