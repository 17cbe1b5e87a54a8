"""File utility functions."""

from __future__ import annotations

import datetime as _dt
import hashlib
import re
from pathlib import Path

SLUG_MAX_CHARS = 60


def ensure_dir(p: Path) -> None:
    """Create directory if it doesn't exist."""
    p.mkdir(parents=True, exist_ok=True)


def is_binary_file(path: Path) -> bool:
    """Check if file is binary by looking for null bytes."""
    try:
        with path.open("rb") as f:
            sample = f.read(2048)
        return b"\x00" in sample
    except OSError:
        return True


def text_sha256(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def slugify(text: str, max_chars: int = SLUG_MAX_CHARS, fallback: str = "untitled") -> str:
    """Lowercase alphanumerics and single hyphens, at most ``max_chars`` long."""
    slug = re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")
    slug = slug[:max_chars].rstrip("-")
    return slug or fallback


def ms_to_datetime(ts_ms: int) -> _dt.datetime:
    return _dt.datetime.fromtimestamp(ts_ms / 1000.0, tz=_dt.timezone.utc)


def iso_date(ts_ms: int) -> str:
    """YYYY-MM-DD of an epoch-millisecond timestamp (UTC)."""
    return ms_to_datetime(ts_ms).strftime("%Y-%m-%d")


def iso_timestamp(ts_ms: int) -> str:
    return ms_to_datetime(ts_ms).isoformat().replace("+00:00", "Z")


def collection_name_for(project_root: Path, prefix: str = "") -> str:
    """Vector store collection name derived from a project root."""
    name = project_root.resolve().name or "default"
    # two roots with the same directory name must not share a collection
    digest = hashlib.sha256(str(project_root.resolve()).encode("utf-8")).hexdigest()[:8]
    name = re.sub(r"[^a-zA-Z0-9_-]", "_", name)
    if name and not name[0].isalpha() and name[0] != "_":
        name = "_" + name
    parts = [p for p in (prefix, name, digest) if p]
    return "_".join(parts)
