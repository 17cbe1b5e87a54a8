"""Configuration management for convmem."""

from .manager import (
    DEFAULT_CONFIG,
    MEMORY_SUBDIRS,
    PROJECT_CONFIG_FILE,
    load_config,
    cfg_fingerprint,
)

__all__ = [
    "DEFAULT_CONFIG",
    "MEMORY_SUBDIRS",
    "PROJECT_CONFIG_FILE",
    "load_config",
    "cfg_fingerprint",
]
