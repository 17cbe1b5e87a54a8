"""Core functionality for convmem."""

from .models import (
    CaptureResult,
    Chunk,
    ChunkDocument,
    ChunkMetadata,
    DecisionDetail,
    Exchange,
    FileIndexResult,
    GotchaDetail,
    IndexProgress,
    IndexResult,
    MemoryItem,
    RememberResult,
    SearchHit,
    SearchResult,
    VectorEntry,
)
from .boundaries import Boundary, BoundaryDetector, BoundaryRules, detect_boundary
from .chunking import Chunker, ConversationChunker, chunk_conversation
from .classifier import MemoryClassifier, classify_memory
from .embeddings import Embedder, SentenceTransformersEmbedder, UnavailableEmbedder, make_embedder

__all__ = [
    "CaptureResult",
    "Chunk",
    "ChunkDocument",
    "ChunkMetadata",
    "DecisionDetail",
    "Exchange",
    "FileIndexResult",
    "GotchaDetail",
    "IndexProgress",
    "IndexResult",
    "MemoryItem",
    "RememberResult",
    "SearchHit",
    "SearchResult",
    "VectorEntry",
    "Boundary",
    "BoundaryDetector",
    "BoundaryRules",
    "detect_boundary",
    "Chunker",
    "ConversationChunker",
    "chunk_conversation",
    "MemoryClassifier",
    "classify_memory",
    "Embedder",
    "SentenceTransformersEmbedder",
    "UnavailableEmbedder",
    "make_embedder",
]
