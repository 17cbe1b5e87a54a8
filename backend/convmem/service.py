"""Service boundary consumed by an outer transport layer.

``MemoryService`` owns one vector store per project root and runs every
pipeline step for a project under that project's lock, so concurrent
callers on one event loop can interleave safely.
"""

from __future__ import annotations

import dataclasses
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .capture import (
    CaptureGuard,
    write_conversation_chunk,
    write_decision_detail,
    write_gotcha,
    write_personal_note,
)
from .config import cfg_fingerprint, load_config
from .core import ConversationChunker, Embedder, MemoryClassifier, make_embedder
from .core.classifier import TEAM
from .core.errors import MissingQueryError, NotFoundError, ValidationError
from .core.models import (
    ITEM_TYPES,
    CaptureResult,
    Chunk,
    DecisionDetail,
    GotchaDetail,
    IndexResult,
    MemoryItem,
    RememberResult,
    SearchResult,
)
from .indexing import VectorIndexer
from .search import SearchService, UnavailableRecall, VectorSemanticRecall
from .storage import VectorStore, create_vector_store

logger = logging.getLogger(__name__)

StoreFactory = Callable[[Dict, Path], VectorStore]

TRUE_VALUES = ("1", "true", "yes")


@dataclasses.dataclass
class ProjectContext:
    """Components bound to one project root and its configuration."""

    cfg: Dict
    fingerprint: str
    store: VectorStore
    indexer: VectorIndexer
    chunker: ConversationChunker
    classifier: MemoryClassifier
    searcher: SearchService

    @property
    def memory_dir(self) -> str:
        return self.cfg.get("memory_dir", "memory")


class MemoryService:
    """Capture, search, rebuild and remember operations per project.

    Args:
        cfg: Fixed configuration for every project; when omitted each
            project's configuration is loaded from its root
        embedder: Shared embedding provider
        store_factory: Builds the vector store of a project
        guard: Capture guard holding per-project rate and dedup state
    """

    def __init__(
        self,
        cfg: Optional[Dict] = None,
        embedder: Optional[Embedder] = None,
        store_factory: Optional[StoreFactory] = None,
        guard: Optional[CaptureGuard] = None,
    ):
        self.cfg = cfg
        base_cfg = cfg if cfg is not None else load_config()
        self.embedder = embedder if embedder is not None else make_embedder(base_cfg)
        self.store_factory = store_factory or create_vector_store
        self.guard = guard if guard is not None else CaptureGuard(base_cfg)
        self._projects: Dict[str, ProjectContext] = {}

    def _require_project(self, project_root: Union[str, Path, None]) -> Path:
        if project_root is None or not str(project_root).strip():
            raise ValidationError("project root is required", field="project_root", error_code="missing_project")
        root = Path(project_root)
        if not root.is_dir():
            raise NotFoundError(f"Unknown project: {project_root}")
        return root

    def _context(self, root: Path) -> ProjectContext:
        cfg = self.cfg if self.cfg is not None else load_config(root)
        fp = cfg_fingerprint(cfg)
        key = str(root)
        ctx = self._projects.get(key)
        if ctx is not None and ctx.fingerprint == fp:
            return ctx
        if ctx is not None:
            logger.info(f"Configuration changed for {root}, reloading project components")
            ctx.store.close()

        store = self.store_factory(cfg, root)
        if self.embedder.available:
            recall = VectorSemanticRecall(store, self.embedder, cfg)
        else:
            recall = UnavailableRecall()
        ctx = ProjectContext(
            cfg=cfg,
            fingerprint=fp,
            store=store,
            indexer=VectorIndexer(store, self.embedder, memory_dir=cfg.get("memory_dir", "memory")),
            chunker=ConversationChunker.from_config(cfg),
            classifier=MemoryClassifier.from_config(cfg),
            searcher=SearchService(recall=recall, cfg=cfg),
        )
        self._projects[key] = ctx
        return ctx

    async def capture(self, project_root: Union[str, Path], exchanges: Any) -> CaptureResult:
        """Guard, chunk, write and index a batch of exchanges.

        Raises:
            NotFoundError: project root is not a directory
            InvalidPayloadError: exchanges missing or malformed
            RateLimitError: too many captures for this project
        """
        root = self._require_project(project_root)
        key = str(root)
        async with self.guard.lock_for(key):
            fresh = self.guard.admit_locked(key, exchanges)
            if not fresh:
                logger.info(f"Capture for {root}: batch already captured")
                return CaptureResult(captured=0, deduplicated=True)

            try:
                ctx = self._context(root)
                chunks = ctx.chunker.chunk(fresh)
                files: List[str] = []
                for chunk in chunks:
                    path = write_conversation_chunk(root, chunk, ctx.memory_dir)
                    files.append(str(path))
                    ctx.indexer.index_chunk(root, chunk.to_document(str(path)))
                    for decision in chunk.metadata.decisions:
                        files.append(str(self._capture_decision(root, ctx, chunk, decision)))
            except Exception:
                logger.warning(f"Capture for {root} failed, {len(fresh)} exchanges can be resubmitted")
                self.guard.forget(key, fresh)
                raise

        logger.info(f"Captured {len(fresh)} exchanges into {len(chunks)} chunks for {root}")
        return CaptureResult(
            captured=len(fresh),
            deduplicated=len(fresh) < len(exchanges),
            chunks=len(chunks),
            files=files,
        )

    def _capture_decision(self, root: Path, ctx: ProjectContext, chunk: Chunk, decision: str) -> Path:
        item = MemoryItem(type="decision", raw=decision, reasoning=chunk.summary, context=chunk.title)
        if ctx.classifier.classify(item) != TEAM:
            logger.debug(f"Personal decision kept out of team memory: {decision!r}")
            return write_personal_note(root, item, ctx.memory_dir)
        path = write_decision_detail(
            root,
            DecisionDetail(
                title=decision,
                reasoning=chunk.summary or decision,
                context=chunk.title,
                date=chunk.start_time or None,
            ),
            ctx.memory_dir,
        )
        ctx.indexer.index_file(root, path)
        return path

    async def search(self, project_root: Union[str, Path], query: Optional[str]) -> SearchResult:
        """
        Raises:
            NotFoundError: project root is not a directory
            MissingQueryError: query absent or blank
        """
        root = self._require_project(project_root)
        if query is None or not str(query).strip():
            raise MissingQueryError()
        ctx = self._context(root)
        return ctx.searcher.search(root, str(query))

    async def index_rebuild(self, project_root: Union[str, Path]) -> IndexResult:
        root = self._require_project(project_root)
        async with self.guard.lock_for(str(root)):
            ctx = self._context(root)
            return ctx.indexer.rebuild_index(root)

    async def remember(self, project_root: Union[str, Path], item: Union[MemoryItem, Dict]) -> RememberResult:
        """Classify a memory item and persist it where it belongs.

        Team decisions, preferences and reasoning become decision files,
        team gotchas become gotcha files; both are indexed. Personal items
        are appended to the personal notes, which are never indexed.
        """
        root = self._require_project(project_root)
        if isinstance(item, dict):
            item = _memory_item_from_dict(item)
        if not item.combined_text().strip():
            raise ValidationError("memory item has no text", field="item", error_code="empty_item")

        async with self.guard.lock_for(str(root)):
            ctx = self._context(root)
            classification = ctx.classifier.classify(item)
            if classification != TEAM:
                path = write_personal_note(root, item, ctx.memory_dir)
                return RememberResult(classification=classification, path=str(path), indexed=False)

            title = item.extra.get("title") or _first_line(item.raw or item.reasoning)
            if item.type == "gotcha":
                path = write_gotcha(
                    root,
                    GotchaDetail(title=title, description=item.reasoning or item.raw, context=item.context),
                    ctx.memory_dir,
                )
            else:
                path = write_decision_detail(
                    root,
                    DecisionDetail(
                        title=title,
                        reasoning=item.reasoning or item.raw,
                        context=item.context,
                        permanent=item.extra.get("permanent", "").lower() in TRUE_VALUES,
                    ),
                    ctx.memory_dir,
                )
            outcome = ctx.indexer.index_file(root, path)
            return RememberResult(classification=classification, path=str(path), indexed=outcome.success)

    def close(self) -> None:
        for ctx in self._projects.values():
            ctx.store.close()
        self._projects.clear()


def _first_line(text: str) -> str:
    for line in (text or "").splitlines():
        if line.strip():
            return line.strip()
    return "Untitled"


def _memory_item_from_dict(data: Dict) -> MemoryItem:
    known = {"type", "raw", "reasoning", "context"}
    if data.get("type") not in ITEM_TYPES:
        raise ValidationError(f"unknown memory type {data.get('type')!r}", field="type", error_code="invalid_type")
    return MemoryItem(
        type=data["type"],
        raw=str(data.get("raw") or ""),
        reasoning=str(data.get("reasoning") or ""),
        context=str(data.get("context") or ""),
        extra={k: str(v) for k, v in data.items() if k not in known and v is not None},
    )
