"""Embedding providers for semantic indexing and recall."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class Embedder:
    """Abstract base class for embedding providers.

    ``embed`` returns None instead of raising when the provider cannot
    produce a vector; callers treat that as "provider unavailable".
    """

    model_name: str = ""

    @property
    def available(self) -> bool:
        return True

    def embed(self, text: str) -> Optional[List[float]]:
        """Embed a single text into a vector."""
        raise NotImplementedError


class UnavailableEmbedder(Embedder):
    """Null-object provider used when no embedding backend is configured."""

    def __init__(self, reason: str = "no embedding backend configured"):
        self.reason = reason

    @property
    def available(self) -> bool:
        return False

    def embed(self, text: str) -> Optional[List[float]]:
        return None


class SentenceTransformersEmbedder(Embedder):
    """Embedder using SentenceTransformers library."""

    def __init__(self, model_name: str) -> None:
        from sentence_transformers import SentenceTransformer  # type: ignore
        self.model_name = model_name
        self.model = SentenceTransformer(model_name)

    def embed(self, text: str) -> Optional[List[float]]:
        if not text or not text.strip():
            return None
        try:
            arr = self.model.encode([text], normalize_embeddings=True, show_progress_bar=False)
        except Exception as e:
            logger.warning(f"Embedding failed with {self.model_name}: {e}")
            return None
        return arr[0].tolist()


def make_embedder(cfg: Dict) -> Embedder:
    """Create embedder from config.

    Args:
        cfg: Configuration dictionary

    Returns:
        Embedder instance; an ``UnavailableEmbedder`` when the backend is
        disabled, unknown, or fails to load
    """
    emb_cfg = cfg.get("embedding", {})
    backend = str(emb_cfg.get("backend", "sentence_transformers")).strip().lower()
    if backend in ("", "none", "disabled"):
        return UnavailableEmbedder()
    if backend != "sentence_transformers":
        logger.warning(f"Unknown embedding.backend {backend!r}, semantic indexing disabled")
        return UnavailableEmbedder(f"unknown backend {backend!r}")

    model_name = emb_cfg.get("sentence_transformers_model", "all-MiniLM-L6-v2")
    try:
        return SentenceTransformersEmbedder(model_name)
    except Exception as e:
        logger.warning(
            f"Could not load sentence-transformers model {model_name!r}, "
            f"semantic indexing disabled: {e}"
        )
        return UnavailableEmbedder(str(e))
