"""Factory for creating vector store instances (Qdrant only)."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from ..utils import collection_name_for
from .base import VectorStore
from .qdrant import QdrantVectorStore, make_qdrant_client


def make_vector_store(cfg: Dict, collection_name: Optional[str] = None) -> VectorStore:
    qdrant_cfg = cfg.get("vector_store", {}).get("qdrant", {})
    name = collection_name or qdrant_cfg.get("collection_prefix") or "convmem"
    return QdrantVectorStore(client=make_qdrant_client(cfg), collection_name=name)


def create_vector_store(cfg: Dict, project_root: Path) -> VectorStore:
    """Vector store holding the memory of one project root."""
    prefix = cfg.get("vector_store", {}).get("qdrant", {}).get("collection_prefix", "")
    return make_vector_store(cfg, collection_name=collection_name_for(project_root, prefix))
