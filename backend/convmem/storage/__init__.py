"""Vector storage backends (Qdrant only)."""

from .base import VectorStore
from .factory import create_vector_store, make_vector_store
from .qdrant import QdrantVectorStore, make_qdrant_client

__all__ = [
    "VectorStore",
    "QdrantVectorStore",
    "create_vector_store",
    "make_qdrant_client",
    "make_vector_store",
]
