"""Markdown to plain text for embedding and file scans."""

from __future__ import annotations

import re
from typing import Tuple

FRONTMATTER_PATTERN = re.compile(r"\A---\s*\n(.*?)\n---\s*(?:\n|\Z)", re.DOTALL)
PERMANENT_PATTERN = re.compile(r"^permanent:\s*true\s*$", re.IGNORECASE | re.MULTILINE)

_STRIP_RULES = [
    (re.compile(r"```[a-zA-Z0-9_-]*\n?"), ""),
    (re.compile(r"^[ \t]{0,3}#{1,6}[ \t]*", re.MULTILINE), ""),
    (re.compile(r"^[ \t]{0,3}(?:-{3,}|\*{3,}|_{3,})[ \t]*$", re.MULTILINE), ""),
    (re.compile(r"^[ \t]{0,3}>[ \t]?", re.MULTILINE), ""),
    (re.compile(r"^([ \t]*)(?:[-*+]|\d+\.)[ \t]+", re.MULTILINE), r"\1"),
    (re.compile(r"!?\[([^\]]*)\]\([^)]*\)"), r"\1"),
    (re.compile(r"(\*\*|__)(.+?)\1"), r"\2"),
    (re.compile(r"(?<![\w*])\*(?!\s)(.+?)(?<!\s)\*(?![\w*])"), r"\1"),
    (re.compile(r"(?<![\w_])_(?!\s)(.+?)(?<!\s)_(?![\w_])"), r"\1"),
    (re.compile(r"`([^`]*)`"), r"\1"),
]


def split_frontmatter(text: str) -> Tuple[str, str]:
    """Return (frontmatter body, remaining markdown)."""
    m = FRONTMATTER_PATTERN.match(text)
    if not m:
        return "", text
    return m.group(1), text[m.end():]


def is_permanent(text: str) -> bool:
    """True only when a leading frontmatter block says ``permanent: true``."""
    frontmatter, _ = split_frontmatter(text)
    return bool(PERMANENT_PATTERN.search(frontmatter))


def extract_clean_text(text: str) -> str:
    """Strip markdown syntax while keeping the words."""
    _, body = split_frontmatter(text)
    for pattern, repl in _STRIP_RULES:
        body = pattern.sub(repl, body)
    lines = [line.rstrip() for line in body.splitlines()]
    cleaned = "\n".join(lines)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned)
    return cleaned.strip()
