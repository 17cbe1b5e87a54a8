"""Memory search with a plain-text fallback."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ..config import DEFAULT_CONFIG
from ..core.models import SearchHit, SearchResult
from ..indexing import extract_clean_text, iter_memory_files
from .base import Searcher
from .recall import SemanticRecall, UnavailableRecall

logger = logging.getLogger(__name__)

TERM_PATTERN = re.compile(r"[a-z0-9]+")


def query_terms(query: str) -> List[str]:
    return list(dict.fromkeys(TERM_PATTERN.findall(query.lower())))


def make_snippet(text: str, position: int, max_chars: int) -> str:
    if len(text) <= max_chars:
        return text
    start = max(0, position - max_chars // 3)
    end = min(len(text), start + max_chars)
    start = max(0, end - max_chars)
    snippet = text[start:end].strip()
    if start > 0:
        snippet = "…" + snippet
    if end < len(text):
        snippet = snippet + "…"
    return snippet


def scan_files(root: Path, query: str, top_k: int, snippet_chars: int, memory_dir: str = "memory") -> List[SearchHit]:
    """Case-insensitive term scan of the markdown artifacts."""
    terms = query_terms(query)
    if not terms:
        return []

    scored: List[Tuple[float, str, SearchHit]] = []
    for path, memory_type in iter_memory_files(Path(root), memory_dir):
        try:
            text = extract_clean_text(path.read_text(encoding="utf-8", errors="replace"))
        except OSError as e:
            logger.warning(f"Skipping unreadable {path} during file search: {e}")
            continue
        lowered = text.lower()
        positions = [lowered.find(t) for t in terms]
        matched = [p for p in positions if p >= 0]
        if not matched:
            continue
        score = len(matched) / len(terms)
        hit = SearchHit(
            text=make_snippet(text, min(matched), snippet_chars),
            score=score,
            type=memory_type,
            source_file=str(path),
        )
        scored.append((score, path.name, hit))

    # newest first among equal scores; artifact names start with their date
    scored.sort(key=lambda x: x[1], reverse=True)
    scored.sort(key=lambda x: x[0], reverse=True)
    return [hit for _, _, hit in scored[:top_k]]


class SearchService(Searcher):
    """Semantic recall first, file scan when recall is missing or failing."""

    def __init__(self, recall: Optional[SemanticRecall] = None, cfg: Optional[Dict] = None):
        cfg = cfg or DEFAULT_CONFIG
        search_cfg = cfg.get("search", {})
        self.recall = recall if recall is not None else UnavailableRecall()
        self.top_k = int(search_cfg.get("top_k", 10))
        self.snippet_chars = int(search_cfg.get("snippet_chars", 300))
        self.memory_dir = cfg.get("memory_dir", "memory")

    def search(self, root: Path, query: str, context: Optional[Dict] = None) -> SearchResult:
        context = dict(context or {})
        context.setdefault("workspace", str(root))
        context.setdefault("limit", self.top_k)

        if self.recall.available:
            try:
                hits = self.recall.recall(query, context)
            except Exception as e:
                logger.warning(f"Semantic recall failed, falling back to file search: {e}")
            else:
                return SearchResult(
                    results=[
                        SearchHit(text=h.text, score=h.score, type=h.type, source_file=h.source_file)
                        for h in hits
                    ],
                    source="vector",
                )
        else:
            logger.debug("Semantic recall unavailable, using file search")

        hits = scan_files(root, query, int(context["limit"]), self.snippet_chars, self.memory_dir)
        return SearchResult(results=hits, source="file")


def search(root: Path, query: str, cfg: Dict, recall: Optional[SemanticRecall] = None) -> SearchResult:
    """Search project memory (Functional Wrapper)."""
    return SearchService(recall=recall, cfg=cfg).search(root, query)
