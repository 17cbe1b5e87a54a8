"""Indexing functionality for convmem."""

from .indexer import (
    VectorIndexer,
    iter_memory_files,
    make_indexer,
    memory_type_for,
    rebuild_index,
    source_key,
)
from .markdown import extract_clean_text, is_permanent

__all__ = [
    "VectorIndexer",
    "extract_clean_text",
    "is_permanent",
    "iter_memory_files",
    "make_indexer",
    "memory_type_for",
    "rebuild_index",
    "source_key",
]
