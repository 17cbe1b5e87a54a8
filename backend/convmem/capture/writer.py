"""Markdown artifact writers for captured conversations and decisions."""

from __future__ import annotations

import contextlib
import logging
import re
from pathlib import Path
from typing import Iterator, List, TextIO

from ..core.models import Chunk, DecisionDetail, GotchaDetail, MemoryItem, now_ms
from ..utils import ensure_dir, iso_date, iso_timestamp, slugify

logger = logging.getLogger(__name__)

SECTION_SEPARATOR = "\n---\n\n"
PHASE_PATTERN = re.compile(r"\bphase\s+(\d+)\b", re.IGNORECASE)
PLAN_PATH_TEMPLATE = ".planning/phases/{phase}-PLAN.md"


@contextlib.contextmanager
def open_for_append(path: Path) -> Iterator[TextIO]:
    """Open ``path`` for appending, creating parents on demand.

    An existing non-empty file gets a horizontal rule before the new
    content. The file is flushed and closed on every exit path.
    """
    ensure_dir(path.parent)
    existing = path.is_file() and path.stat().st_size > 0
    with path.open("a", encoding="utf-8") as f:
        if existing:
            f.write(SECTION_SEPARATOR)
        yield f
        f.flush()


def memory_path(root: Path, subdir: str, memory_dir: str = "memory") -> Path:
    return Path(root) / memory_dir / subdir


def find_plan_references(chunk: Chunk) -> List[str]:
    """Plan file paths for every ``phase N`` mentioned in the exchanges."""
    phases: List[str] = []
    for ex in chunk.exchanges:
        for m in PHASE_PATTERN.finditer(f"{ex.user}\n{ex.assistant}"):
            if m.group(1) not in phases:
                phases.append(m.group(1))
    return [PLAN_PATH_TEMPLATE.format(phase=p) for p in phases]


def render_conversation_chunk(chunk: Chunk, ts: int) -> str:
    lines = [f"# {chunk.title}", "", "## Context", "", f"**Date:** {iso_timestamp(ts)}"]
    if chunk.summary:
        lines.append(f"**Summary:** {chunk.summary}")
    if chunk.metadata.projects:
        lines.append(f"**Projects:** {', '.join(chunk.metadata.projects)}")

    lines += ["", "## Exchanges", ""]
    for i, ex in enumerate(chunk.exchanges, 1):
        lines.append(f"### Exchange {i}")
        lines.append("")
        lines.append(f"**User:** {ex.user}")
        if ex.assistant:
            lines.append("")
            lines.append(f"**Assistant:** {ex.assistant}")
        lines.append("")

    for heading, items in (
        ("Decisions", chunk.metadata.decisions),
        ("Related Files", chunk.metadata.files),
        ("Commands", chunk.metadata.commands),
        ("Related Plans", find_plan_references(chunk)),
    ):
        if not items:
            continue
        lines += [f"## {heading}", ""]
        lines += [f"- {item}" for item in items]
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def write_conversation_chunk(root: Path, chunk: Chunk, memory_dir: str = "memory") -> Path:
    """Write a chunk to ``conversations/{date}-{slug}.md``, appending to an existing file."""
    slug = slugify(chunk.topic or chunk.title)
    ts = chunk.start_time or now_ms()
    path = memory_path(root, "conversations", memory_dir) / f"{iso_date(ts)}-{slug}.md"
    with open_for_append(path) as f:
        f.write(render_conversation_chunk(chunk, ts))
    logger.debug(f"Wrote chunk {chunk.id} ({len(chunk.exchanges)} exchanges) to {path}")
    return path


def render_decision(decision: DecisionDetail, date_ms: int) -> str:
    lines: List[str] = []
    if decision.permanent:
        lines += ["---", "permanent: true", "---", ""]
    lines += [f"# Decision: {decision.title}", "", f"**Date:** {iso_timestamp(date_ms)}", ""]
    if decision.context:
        lines += ["## Context", "", decision.context, ""]
    lines += ["## Reasoning", "", decision.reasoning, ""]
    if decision.alternatives:
        lines += ["## Alternatives Considered", ""]
        lines += [f"- {alt}" for alt in decision.alternatives]
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def write_decision_detail(root: Path, decision: DecisionDetail, memory_dir: str = "memory") -> Path:
    """Write ``decisions/{date}-{slug}.md``; the same date and title replaces the file."""
    if not decision.title or not decision.title.strip():
        raise ValueError("decision title is required")
    if not decision.reasoning or not decision.reasoning.strip():
        raise ValueError("decision reasoning is required")

    date_ms = decision.date or now_ms()
    path = memory_path(root, "decisions", memory_dir) / f"{iso_date(date_ms)}-{slugify(decision.title)}.md"
    ensure_dir(path.parent)
    path.write_text(render_decision(decision, date_ms), encoding="utf-8")
    logger.debug(f"Wrote decision '{decision.title}' to {path}")
    return path


def write_gotcha(root: Path, gotcha: GotchaDetail, memory_dir: str = "memory") -> Path:
    if not gotcha.title or not gotcha.title.strip():
        raise ValueError("gotcha title is required")

    date_ms = gotcha.date or now_ms()
    lines = [f"# Gotcha: {gotcha.title}", "", f"**Date:** {iso_timestamp(date_ms)}", ""]
    if gotcha.description:
        lines += [gotcha.description, ""]
    if gotcha.context:
        lines += [f"**Context:** {gotcha.context}", ""]

    path = memory_path(root, "gotchas", memory_dir) / f"{slugify(gotcha.title)}.md"
    ensure_dir(path.parent)
    path.write_text("\n".join(lines).rstrip() + "\n", encoding="utf-8")
    return path


def write_personal_note(root: Path, item: MemoryItem, memory_dir: str = "memory") -> Path:
    """Append a personal item to today's ``personal/{date}.md``; never indexed."""
    ts = now_ms()
    path = memory_path(root, "personal", memory_dir) / f"{iso_date(ts)}.md"
    body = item.combined_text() or "(empty)"
    with open_for_append(path) as f:
        f.write(f"## {item.type.capitalize()} ({iso_timestamp(ts)})\n\n{body}\n")
    return path
