"""Semantic recall over the vector store.

Ranking combines vector similarity with recency decay and workspace
relevance::

    score = similarity * 0.5 + recency * 0.25 + relevance * 0.25
    score *= 1.2 if the entry is permanent

Recency decays exponentially with a 7-day half-life. All weights come
from the ``recall`` config section.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from typing import Callable, Dict, List, Optional, Sequence

from ..config import DEFAULT_CONFIG
from ..core import Embedder
from ..core.errors import ProviderUnavailable
from ..core.models import VectorEntry, now_ms
from ..storage import VectorStore

logger = logging.getLogger(__name__)

DAY_MS = 24 * 60 * 60 * 1000
DEFAULT_LIMIT = 10
FETCH_MULTIPLIER = 3


@dataclasses.dataclass(frozen=True)
class RecallHit:
    id: str
    text: str
    score: float
    type: str
    source_file: str = ""
    timestamp: int = 0
    permanent: bool = False


def recency_score(timestamp: int, now: int, half_life_days: float) -> float:
    age_days = max(0, now - timestamp) / DAY_MS
    return math.exp(-age_days * math.log(2) / half_life_days)


class SemanticRecall:
    """Abstract recall provider."""

    @property
    def available(self) -> bool:
        return True

    def recall(self, query: str, context: Optional[Dict] = None) -> List[RecallHit]:
        raise NotImplementedError


class UnavailableRecall(SemanticRecall):
    """Null-object provider; callers fall back to scanning files."""

    @property
    def available(self) -> bool:
        return False

    def recall(self, query: str, context: Optional[Dict] = None) -> List[RecallHit]:
        raise ProviderUnavailable("semantic recall is not configured")


class VectorSemanticRecall(SemanticRecall):
    """Recall backed by an embedder and a vector store.

    Context keys (all optional): ``workspace`` (project root the query
    comes from), ``scope`` (``workspace`` or ``global``), ``types``
    (memory types to keep), ``limit``, ``min_score`` (lowest vector
    similarity kept).
    """

    def __init__(
        self,
        store: VectorStore,
        embedder: Embedder,
        cfg: Optional[Dict] = None,
        clock: Callable[[], int] = now_ms,
    ):
        recall_cfg = (cfg or DEFAULT_CONFIG).get("recall", DEFAULT_CONFIG["recall"])
        self.store = store
        self.embedder = embedder
        self.clock = clock
        self.scope = recall_cfg.get("scope", "workspace")
        self.similarity_weight = float(recall_cfg.get("similarity_weight", 0.5))
        self.recency_weight = float(recall_cfg.get("recency_weight", 0.25))
        self.relevance_weight = float(recall_cfg.get("relevance_weight", 0.25))
        self.permanent_boost = float(recall_cfg.get("permanent_boost", 1.2))
        self.half_life_days = float(recall_cfg.get("recency_half_life_days", 7))
        self.min_score = recall_cfg.get("min_score")
        self.default_limit = int((cfg or DEFAULT_CONFIG).get("search", {}).get("top_k", DEFAULT_LIMIT))

    @property
    def available(self) -> bool:
        return self.embedder.available

    def score(self, similarity: float, entry: VectorEntry, workspace: Optional[str], now: int) -> float:
        relevance = 1.0 if workspace and entry.workspace == workspace else 0.0
        combined = (
            similarity * self.similarity_weight
            + recency_score(entry.timestamp, now, self.half_life_days) * self.recency_weight
            + relevance * self.relevance_weight
        )
        if entry.permanent:
            combined *= self.permanent_boost
        return combined

    def recall(self, query: str, context: Optional[Dict] = None) -> List[RecallHit]:
        context = context or {}
        if not query or not query.strip():
            return []

        embedding = self.embedder.embed(query)
        if embedding is None:
            raise ProviderUnavailable("embedding provider returned no vector for the query")

        limit = int(context.get("limit") or self.default_limit)
        scope = context.get("scope") or self.scope
        workspace = context.get("workspace")
        types: Optional[Sequence[str]] = context.get("types")
        min_score = context.get("min_score", self.min_score)
        now = self.clock()

        best: Dict[str, RecallHit] = {}
        similarities: Dict[str, float] = {}
        for similarity, entry in self.store.search(embedding, limit * FETCH_MULTIPLIER):
            if scope != "global" and workspace and entry.workspace != workspace:
                continue
            if types and entry.type not in types:
                continue
            score = self.score(similarity, entry, workspace, now)
            existing = best.get(entry.id)
            if existing is None or score > existing.score:
                best[entry.id] = RecallHit(
                    id=entry.id,
                    text=entry.text,
                    score=score,
                    type=entry.type,
                    source_file=entry.source_file,
                    timestamp=entry.timestamp,
                    permanent=entry.permanent,
                )
                similarities[entry.id] = similarity

        hits = list(best.values())
        if min_score is not None:
            # min_score bounds the raw query similarity
            hits = [h for h in hits if similarities[h.id] >= float(min_score)]
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:limit]
