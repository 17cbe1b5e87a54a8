"""Memory indexing logic."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..config import MEMORY_SUBDIRS
from ..core import Embedder, make_embedder
from ..core.models import FileIndexResult, IndexProgress, IndexResult, VectorEntry, now_ms
from ..storage import VectorStore
from ..utils import is_binary_file, text_sha256
from .base import Indexer, ProgressCallback
from .markdown import extract_clean_text, is_permanent

logger = logging.getLogger(__name__)

DEFAULT_TYPE = "conversation"


def memory_type_for(path: Path) -> str:
    """Memory type from the artifact's parent directory name."""
    return MEMORY_SUBDIRS.get(path.parent.name, DEFAULT_TYPE)


def iter_memory_files(root: Path, memory_dir: str = "memory") -> Iterable[Tuple[Path, str]]:
    """Yield (path, type) for every markdown artifact, directory by directory, sorted."""
    base = root / memory_dir
    for subdir, memory_type in MEMORY_SUBDIRS.items():
        d = base / subdir
        if not d.is_dir():
            continue
        for p in sorted(d.glob("*.md")):
            if p.is_file():
                yield p, memory_type


def source_key(file_path: Path, root: Optional[Path] = None) -> str:
    """Canonical string for a memory file, used as the store's source_file."""
    file_path = Path(file_path)
    if root is not None and not file_path.is_absolute():
        file_path = Path(root) / file_path
    return str(file_path.resolve())


def entry_id_for(source_file: str) -> str:
    return text_sha256(source_file)[:16]


class VectorIndexer(Indexer):
    """Embeds memory artifacts and upserts them into a vector store.

    Files are processed strictly one at a time so progress and error
    counts stay ordered. Nothing here raises for a bad file or a missing
    embedding; failures come back as ``FileIndexResult(success=False)``.
    """

    def __init__(self, store: VectorStore, embedder: Embedder, memory_dir: str = "memory"):
        self.store = store
        self.embedder = embedder
        self.memory_dir = memory_dir

    def _read(self, path: Path) -> Tuple[Optional[str], Optional[str]]:
        """Return (raw markdown, error)."""
        if not path.is_file():
            return None, "file not found"
        if is_binary_file(path):
            return None, "binary file"
        try:
            return path.read_text(encoding="utf-8"), None
        except UnicodeDecodeError:
            return None, "not valid UTF-8"
        except OSError as e:
            return None, f"unreadable: {e}"

    def _insert(self, entry: VectorEntry) -> Optional[str]:
        try:
            self.store.insert(entry)
        except Exception as e:
            logger.warning(f"Vector store insert failed for {entry.source_file or entry.id}: {e}")
            return str(e)
        return None

    def is_indexed(self, file_path: Path) -> bool:
        """True when the stored entry matches both the text and the permanent marker."""
        key = source_key(file_path)
        raw, error = self._read(Path(key))
        if error is not None:
            return False
        clean = extract_clean_text(raw)
        permanent = is_permanent(raw)
        for entry in self.store.get_all(source_file=key):
            if entry.text == clean and entry.permanent == permanent:
                return True
        return False

    def index_file(self, root: Path, file_path: Path) -> FileIndexResult:
        return self._index_path(root, Path(source_key(file_path, root)))

    def _index_path(self, root: Path, path: Path) -> FileIndexResult:
        source_file = source_key(path)
        entry_id = entry_id_for(source_file)

        raw, error = self._read(path)
        if error is not None:
            logger.warning(f"Skipping {source_file}: {error}")
            return FileIndexResult(success=False, entry_id=entry_id, error=error)
        clean = extract_clean_text(raw)
        if not clean:
            return FileIndexResult(success=False, entry_id=entry_id, error="no text content")

        embedding = self.embedder.embed(clean)
        if embedding is None:
            logger.warning(f"No embedding for {source_file}, provider unavailable")
            return FileIndexResult(success=False, entry_id=entry_id, error="embedding unavailable")

        try:
            timestamp = int(path.stat().st_mtime * 1000)
        except OSError:
            timestamp = now_ms()

        entry = VectorEntry(
            id=entry_id,
            text=clean,
            type=memory_type_for(path),
            source_file=source_file,
            workspace=str(root),
            timestamp=timestamp,
            embedding=list(embedding),
            permanent=is_permanent(raw),
        )
        error = self._insert(entry)
        if error is not None:
            return FileIndexResult(success=False, entry_id=entry_id, error=error)
        logger.debug(f"Indexed {source_file} as {entry.type} (permanent={entry.permanent})")
        return FileIndexResult(success=True, entry_id=entry_id)

    def index_chunk(self, root: Path, chunk) -> FileIndexResult:
        """Index a chunk-shaped record (``id`` and ``text``) without reading files."""
        text = getattr(chunk, "text", "") or ""
        entry_id = getattr(chunk, "id", "") or text_sha256(text)[:16]
        if not text.strip():
            return FileIndexResult(success=False, entry_id=entry_id, error="no text content")

        embedding = self.embedder.embed(text)
        if embedding is None:
            logger.warning(f"No embedding for chunk {entry_id}, provider unavailable")
            return FileIndexResult(success=False, entry_id=entry_id, error="embedding unavailable")

        source_file = getattr(chunk, "source_file", "") or ""
        timestamp = getattr(chunk, "timestamp", None) or getattr(chunk, "start_time", None) or now_ms()
        entry = VectorEntry(
            id=entry_id,
            text=text,
            type=getattr(chunk, "type", DEFAULT_TYPE) or DEFAULT_TYPE,
            source_file=source_key(source_file, root) if source_file else "",
            workspace=str(root),
            timestamp=int(timestamp),
            embedding=list(embedding),
            permanent=bool(getattr(chunk, "permanent", False)),
        )
        error = self._insert(entry)
        if error is not None:
            return FileIndexResult(success=False, entry_id=entry_id, error=error)
        return FileIndexResult(success=True, entry_id=entry_id)

    def index_all(self, root: Path, on_progress: Optional[ProgressCallback] = None) -> IndexResult:
        root = Path(root)
        files: List[Tuple[Path, str]] = list(iter_memory_files(root, self.memory_dir))
        total = len(files)
        result = IndexResult()

        for path, _memory_type in files:
            try:
                if self.is_indexed(path):
                    result.skipped += 1
                else:
                    outcome = self._index_path(root, path)
                    if outcome.success:
                        result.indexed += 1
                    else:
                        result.errors += 1
            except Exception as e:
                logger.warning(f"Indexing {path} failed: {e}")
                result.errors += 1

            if on_progress is not None:
                on_progress(IndexProgress(
                    indexed=result.indexed,
                    skipped=result.skipped,
                    errors=result.errors,
                    total=total,
                    current_file=str(path),
                ))

        logger.info(
            f"Indexed {result.indexed}/{total} memory files under {root} "
            f"({result.skipped} unchanged, {result.errors} errors)"
        )
        return result

    def rebuild_index(self, root: Path, on_progress: Optional[ProgressCallback] = None) -> IndexResult:
        self.store.rebuild()
        logger.info(f"Cleared vector store, re-indexing {root}")
        return self.index_all(root, on_progress=on_progress)


def make_indexer(cfg: Dict, store: VectorStore, embedder: Optional[Embedder] = None) -> VectorIndexer:
    return VectorIndexer(
        store=store,
        embedder=embedder if embedder is not None else make_embedder(cfg),
        memory_dir=cfg.get("memory_dir", "memory"),
    )


def rebuild_index(root: Path, cfg: Dict, store: VectorStore, embedder: Optional[Embedder] = None) -> IndexResult:
    """Clear and rebuild the memory index (Wrapper)."""
    indexer = make_indexer(cfg, store, embedder)
    return indexer.rebuild_index(root)
