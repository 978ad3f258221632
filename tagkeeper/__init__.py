"""tagkeeper package initialization."""

from __future__ import annotations

from .api import (
    TagkeeperClient,
    TagkeeperInputError,
    clear_index,
    config_context,
    generate,
    refresh,
    set_config_json,
    set_data_dir,
)

__all__ = [
    "__version__",
    "TagkeeperClient",
    "TagkeeperInputError",
    "clear_index",
    "config_context",
    "generate",
    "get_version",
    "refresh",
    "set_config_json",
    "set_data_dir",
]

__version__ = "0.1.0"


def get_version() -> str:
    """Return the current package version."""
    return __version__
