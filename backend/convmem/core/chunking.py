"""Conversation chunking: split exchanges into topic-coherent chunks."""

from __future__ import annotations

import hashlib
import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence

from ..config import DEFAULT_CONFIG
from .boundaries import BoundaryDetector, BoundaryRules
from .models import Chunk, ChunkMetadata, Exchange

logger = logging.getLogger(__name__)

TITLE_MAX_CHARS = 80
SUMMARY_MAX_CHARS = 100

# path-like tokens: at least one directory separator and an extension
FILE_PATH_PATTERN = re.compile(
    r"""(?:^|\s|['"`(])([a-zA-Z0-9._-]+/[a-zA-Z0-9._\-/]+\.[a-zA-Z]{1,10})(?=['"`)\s,]|$)"""
)

DECISION_PATTERNS = [
    re.compile(r"let'?s use (\S+.*?)(?:\.|$)", re.IGNORECASE),
    re.compile(r"we (?:decided|chose|agreed) to (.*?)(?:\.|$)", re.IGNORECASE),
    re.compile(r"(?:going|switched?) (?:with|to) (.*?)(?:\.|$)", re.IGNORECASE),
    re.compile(r"instead of (\S+),?\s+(?:we'?ll|let'?s|use) (.*?)(?:\.|$)", re.IGNORECASE),
]

PROJECT_PATTERN = re.compile(
    r"\b(?:the\s+)?([A-Z][a-zA-Z0-9-]+)(?:\s+(?:project|module|service|repo|package))"
)

MIN_DECISION_CHARS = 6


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def _unique(items: Iterable[str]) -> tuple:
    return tuple(dict.fromkeys(items))


def generate_chunk_id(exchanges: Sequence[Exchange]) -> str:
    """Deterministic ID from the ordered (timestamp, user text) pairs."""
    content = "|".join(f"{e.timestamp}:{e.user}" for e in exchanges)
    return hashlib.sha256(content.encode("utf-8")).hexdigest()[:16]


class Chunker:
    """Abstract base class for conversation chunking."""

    def chunk(self, exchanges: Sequence[Exchange]) -> List[Chunk]:
        """Chunk exchanges into topic-coherent segments.

        Args:
            exchanges: Ordered exchanges of one conversation

        Returns:
            Chunks whose exchange lists partition the input in order
        """
        raise NotImplementedError


class ConversationChunker(Chunker):
    """Boundary-driven chunker with min/max chunk sizes."""

    def __init__(
        self,
        min_chunk_size: int = 1,
        max_chunk_size: int = 8,
        detector: Optional[BoundaryDetector] = None,
    ):
        if min_chunk_size < 1 or max_chunk_size < 1:
            raise ValueError("chunk sizes must be positive")
        self.min_chunk_size = min_chunk_size
        self.max_chunk_size = max_chunk_size
        self.detector = detector or BoundaryDetector()

    @classmethod
    def from_config(cls, cfg: Dict) -> "ConversationChunker":
        section = dict(DEFAULT_CONFIG["chunking"])
        section.update(cfg.get("chunking", {}))
        return cls(
            min_chunk_size=int(section["min_chunk_size"]),
            max_chunk_size=int(section["max_chunk_size"]),
            detector=BoundaryDetector(BoundaryRules.from_config(cfg)),
        )

    @property
    def rules(self) -> BoundaryRules:
        return self.detector.rules

    def chunk(self, exchanges: Sequence[Exchange]) -> List[Chunk]:
        if not exchanges:
            return []

        chunks: List[Chunk] = []
        buffer: List[Exchange] = []
        previous: Optional[Exchange] = None

        for exchange in exchanges:
            boundary = self.detector.detect(exchange, previous)
            should_split = boundary.is_boundary and len(buffer) >= self.min_chunk_size
            exceeds_max = len(buffer) >= self.max_chunk_size

            if buffer and (should_split or exceeds_max):
                logger.debug(
                    f"Flushing {len(buffer)} exchanges "
                    f"({boundary.type if should_split else 'max size'})"
                )
                chunks.append(self.build_chunk(buffer))
                buffer = []

            buffer.append(exchange)
            previous = exchange

        if buffer:
            chunks.append(self.build_chunk(buffer))

        logger.info(f"Created {len(chunks)} chunks from {len(exchanges)} exchanges")
        return chunks

    def build_chunk(self, exchanges: Sequence[Exchange]) -> Chunk:
        title = self.generate_title(exchanges)
        return Chunk(
            id=generate_chunk_id(exchanges),
            title=title,
            summary=generate_summary(exchanges),
            topic=title,
            exchanges=tuple(exchanges),
            start_time=exchanges[0].timestamp,
            end_time=exchanges[-1].timestamp,
            metadata=self.extract_metadata(exchanges),
        )

    def generate_title(self, exchanges: Sequence[Exchange]) -> str:
        """Title from the first user message.

        Prefers a workflow command, then the opening question, then the
        first sentence; long titles are truncated with an ellipsis.
        """
        if not exchanges:
            return "Untitled"
        first_user = (exchanges[0].user or "").strip()

        if self.rules.is_command(first_user):
            return first_user

        if "?" in first_user:
            question = first_user.split("?", 1)[0] + "?"
            return _truncate(question, TITLE_MAX_CHARS)

        first_sentence = re.split(r"[.!?\n]", first_user, maxsplit=1)[0].strip()
        if first_sentence:
            return _truncate(first_sentence, TITLE_MAX_CHARS)
        return "Untitled"

    def extract_metadata(self, exchanges: Sequence[Exchange]) -> ChunkMetadata:
        """Collect file paths, commands, decisions and project names."""
        files: List[str] = []
        commands: List[str] = []
        decisions: List[str] = []
        projects: List[str] = []
        prefix = re.escape(self.rules.command_prefix)
        command_re = re.compile(rf"/?{prefix}:\S+", re.IGNORECASE)

        for exchange in exchanges:
            full_text = exchange.text

            files.extend(m.group(1) for m in FILE_PATH_PATTERN.finditer(full_text))

            cmd = command_re.search(exchange.user or "")
            if cmd:
                name = cmd.group(0)
                commands.append(name if name.startswith("/") else "/" + name)

            for pattern in DECISION_PATTERNS:
                for m in pattern.finditer(full_text):
                    decision = m.group(0).strip()
                    if len(decision) >= MIN_DECISION_CHARS:
                        decisions.append(decision)

            projects.extend(m.group(1) for m in PROJECT_PATTERN.finditer(full_text))

        return ChunkMetadata(
            projects=_unique(projects),
            files=_unique(files),
            commands=_unique(commands),
            decisions=_unique(decisions),
        )


def generate_summary(exchanges: Sequence[Exchange]) -> str:
    if not exchanges:
        return ""
    parts: List[str] = []

    first_user = (exchanges[0].user or "").strip()
    if first_user:
        parts.append(f"Discussed: {_truncate(first_user, SUMMARY_MAX_CHARS)}.")

    first_assistant = (exchanges[0].assistant or "").strip()
    if first_assistant:
        first_sentence = re.split(r"[.!?]", first_assistant, maxsplit=1)[0].strip()
        if first_sentence:
            parts.append(f"{first_sentence}.")

    if len(exchanges) > 1:
        parts.append(f"{len(exchanges)} exchanges in this topic.")

    return " ".join(parts)


def chunk_conversation(
    exchanges: Sequence[Exchange],
    min_chunk_size: int = 1,
    max_chunk_size: int = 8,
) -> List[Chunk]:
    """Chunk a conversation with the default rule tables (Functional Wrapper)."""
    chunker = ConversationChunker(min_chunk_size=min_chunk_size, max_chunk_size=max_chunk_size)
    return chunker.chunk(exchanges)

