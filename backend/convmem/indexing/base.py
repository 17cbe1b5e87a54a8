"""Indexer Interface."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional

from ..core.models import ChunkDocument, FileIndexResult, IndexProgress, IndexResult

ProgressCallback = Callable[[IndexProgress], None]


class Indexer:
    """Abstract base class for memory indexing."""

    def index_all(self, root: Path, on_progress: Optional[ProgressCallback] = None) -> IndexResult:
        raise NotImplementedError

    def index_file(self, root: Path, file_path: Path) -> FileIndexResult:
        raise NotImplementedError

    def index_chunk(self, root: Path, chunk: ChunkDocument) -> FileIndexResult:
        raise NotImplementedError

    def is_indexed(self, file_path: Path) -> bool:
        raise NotImplementedError

    def rebuild_index(self, root: Path, on_progress: Optional[ProgressCallback] = None) -> IndexResult:
        raise NotImplementedError
