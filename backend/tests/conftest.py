"""
Shared pytest fixtures for convmem tests.

Provides mock providers to avoid loading ML models or reaching a Qdrant
server during testing.
"""

import copy
import hashlib
import math
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from convmem.config import DEFAULT_CONFIG
from convmem.core import Embedder, Exchange
from convmem.core.models import VectorEntry
from convmem.storage import VectorStore


class MockEmbeddingProvider(Embedder):
    """
    Deterministic mock embedding provider for testing.

    Generates consistent embeddings based on text hash - no ML model loading.
    Calls listed in ``fail_calls`` (1-based) return None to simulate an
    unavailable provider.
    """

    dimension = 32
    model_name = "mock-model"

    def __init__(self, fail_calls=(), always_fail: bool = False):
        self.calls: List[str] = []
        self.fail_calls = set(fail_calls)
        self.always_fail = always_fail

    @property
    def embed_calls(self) -> int:
        return len(self.calls)

    def embed(self, text: str) -> Optional[List[float]]:
        self.calls.append(text)
        if self.always_fail or len(self.calls) in self.fail_calls:
            return None
        h = hashlib.md5(text.encode()).hexdigest()
        embedding = [int(h[i:i + 2], 16) / 255.0 + 0.01 for i in range(0, 32, 2)]
        return (embedding * 2)[:self.dimension]


class RecordingVectorStore(VectorStore):
    """In-memory vector store that records every call in order."""

    def __init__(self):
        self.entries: Dict[str, VectorEntry] = {}
        self.events: List[str] = []
        self.inserted: List[VectorEntry] = []
        self.closed = False

    @property
    def rebuild_calls(self) -> int:
        return self.events.count("rebuild")

    def insert(self, entry: VectorEntry) -> None:
        self.events.append("insert")
        self.inserted.append(entry)
        self.entries[entry.id] = entry

    def get_all(self, source_file: Optional[str] = None) -> List[VectorEntry]:
        entries = list(self.entries.values())
        if source_file:
            entries = [e for e in entries if e.source_file == source_file]
        return entries

    def delete(self, entry_id: str) -> None:
        self.events.append("delete")
        self.entries.pop(entry_id, None)

    def rebuild(self) -> None:
        self.events.append("rebuild")
        self.entries.clear()

    def count(self) -> int:
        return len(self.entries)

    def search(self, embedding: List[float], limit: int) -> List[Tuple[float, VectorEntry]]:
        def cosine(a, b):
            dot = sum(x * y for x, y in zip(a, b))
            na = math.sqrt(sum(x * x for x in a)) or 1.0
            nb = math.sqrt(sum(y * y for y in b)) or 1.0
            return dot / (na * nb)

        scored = [(cosine(embedding, e.embedding), e) for e in self.entries.values()]
        scored.sort(key=lambda x: x[0], reverse=True)
        return scored[:limit]

    def close(self) -> None:
        self.closed = True


def make_exchanges(*users: str, start: int = 1_700_000_000_000) -> List[Exchange]:
    return [
        Exchange(user=u, assistant=f"Answer about {u}", timestamp=start + i * 1000)
        for i, u in enumerate(users)
    ]


@pytest.fixture
def cfg() -> Dict:
    """Fresh default configuration, unaffected by environment overrides."""
    return copy.deepcopy(DEFAULT_CONFIG)


@pytest.fixture
def mock_embedding_provider():
    return MockEmbeddingProvider()


@pytest.fixture
def recording_store():
    return RecordingVectorStore()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Project root with empty memory/ subdirectories."""
    root = tmp_path / "project"
    for sub in ("decisions", "gotchas", "conversations"):
        (root / "memory" / sub).mkdir(parents=True)
    return root
