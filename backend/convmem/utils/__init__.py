"""Utility functions for convmem."""

from .file_utils import (
    collection_name_for,
    ensure_dir,
    is_binary_file,
    iso_date,
    iso_timestamp,
    slugify,
    text_sha256,
)

__all__ = [
    "collection_name_for",
    "ensure_dir",
    "is_binary_file",
    "iso_date",
    "iso_timestamp",
    "slugify",
    "text_sha256",
]
