"""Data models for convmem."""

from __future__ import annotations

import dataclasses
import time
from typing import Any, Dict, List, Optional, Tuple

MEMORY_TYPES = ("decision", "gotcha", "conversation")
ITEM_TYPES = ("decision", "gotcha", "preference", "reasoning")


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclasses.dataclass(frozen=True)
class Exchange:
    """One user/assistant turn."""

    user: str
    assistant: str = ""
    timestamp: int = 0

    @property
    def text(self) -> str:
        return f"{self.user} {self.assistant}"


@dataclasses.dataclass(frozen=True)
class ChunkMetadata:
    projects: Tuple[str, ...] = ()
    files: Tuple[str, ...] = ()
    commands: Tuple[str, ...] = ()
    decisions: Tuple[str, ...] = ()


@dataclasses.dataclass(frozen=True)
class ChunkDocument:
    """Chunk-shaped record that can be indexed without touching the filesystem."""

    id: str
    text: str
    type: str = "conversation"
    source_file: str = ""
    timestamp: Optional[int] = None
    permanent: bool = False


@dataclasses.dataclass(frozen=True)
class Chunk:
    """A contiguous, topic-coherent group of exchanges."""

    id: str
    title: str
    summary: str
    topic: str
    exchanges: Tuple[Exchange, ...]
    start_time: int
    end_time: int
    metadata: ChunkMetadata = ChunkMetadata()

    def __post_init__(self) -> None:
        if not self.exchanges:
            raise ValueError("a chunk needs at least one exchange")

    @property
    def text(self) -> str:
        parts = [self.title]
        if self.summary:
            parts.append(self.summary)
        for ex in self.exchanges:
            parts.append(f"User: {ex.user}")
            if ex.assistant:
                parts.append(f"Assistant: {ex.assistant}")
        return "\n".join(parts)

    def to_document(self, source_file: str = "") -> ChunkDocument:
        return ChunkDocument(
            id=self.id,
            text=self.text,
            type="conversation",
            source_file=source_file,
            timestamp=self.start_time,
        )


@dataclasses.dataclass
class MemoryItem:
    """Freeform memory item awaiting team/personal classification."""

    type: str
    raw: str = ""
    reasoning: str = ""
    context: str = ""
    extra: Dict[str, str] = dataclasses.field(default_factory=dict)

    def combined_text(self) -> str:
        fields = [self.raw, self.reasoning, self.context, *self.extra.values()]
        return " ".join(f for f in fields if f)


@dataclasses.dataclass
class DecisionDetail:
    title: str
    reasoning: str
    context: str = ""
    alternatives: List[str] = dataclasses.field(default_factory=list)
    permanent: bool = False
    date: Optional[int] = None  # epoch ms, defaults to now


@dataclasses.dataclass
class GotchaDetail:
    title: str
    description: str
    context: str = ""
    date: Optional[int] = None


@dataclasses.dataclass
class VectorEntry:
    """Record shape passed across the vector store boundary."""

    id: str
    text: str
    type: str
    source_file: str
    workspace: str
    timestamp: int
    embedding: List[float]
    permanent: bool = False

    def payload(self) -> Dict[str, Any]:
        return {
            "entry_id": self.id,
            "text": self.text,
            "type": self.type,
            "source_file": self.source_file,
            "workspace": self.workspace,
            "timestamp": self.timestamp,
            "permanent": self.permanent,
        }


@dataclasses.dataclass
class IndexResult:
    indexed: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def total(self) -> int:
        return self.indexed + self.skipped + self.errors


@dataclasses.dataclass(frozen=True)
class IndexProgress:
    indexed: int
    skipped: int
    errors: int
    total: int
    current_file: str = ""


@dataclasses.dataclass(frozen=True)
class FileIndexResult:
    success: bool
    entry_id: Optional[str] = None
    error: Optional[str] = None


@dataclasses.dataclass
class CaptureResult:
    captured: int
    deduplicated: bool = False
    chunks: int = 0
    files: List[str] = dataclasses.field(default_factory=list)


@dataclasses.dataclass(frozen=True)
class SearchHit:
    text: str
    score: float
    type: str
    source_file: str = ""


@dataclasses.dataclass
class SearchResult:
    results: List[SearchHit]
    source: str  # "vector" | "file"


@dataclasses.dataclass
class RememberResult:
    classification: str
    path: Optional[str] = None
    indexed: bool = False
