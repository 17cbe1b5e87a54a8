"""Configuration management for convmem."""

from __future__ import annotations

import copy
import hashlib
import json
import logging
import os
from pathlib import Path
from typing import Dict, List

logger = logging.getLogger(__name__)

PROJECT_CONFIG_FILE = ".convmem.json"

MEMORY_SUBDIRS: Dict[str, str] = {
    "decisions": "decision",
    "gotchas": "gotcha",
    "conversations": "conversation",
}

DEFAULT_SOFT_SIGNALS: List[str] = [
    r"^ok\b",
    r"^okay\b",
    r"^done\b",
    r"^next\b",
    r"^moving on",
    r"^let'?s move on",
    r"^let'?s build",
    r"^let'?s do",
    r"^sounds good",
    r"^got it",
    r"^alright",
]

DEFAULT_INFRA_KEYWORDS: List[str] = [
    "database", "postgres", "mysql", "sqlite", "redis", "schema", "migration",
    "api", "endpoint", "graphql", "auth", "deploy", "deployment",
    "docker", "kubernetes", "infrastructure", "server", "ci", "pipeline",
    "architecture", "security", "queue", "cache", "service",
]

DEFAULT_PERSONAL_KEYWORDS: List[str] = [
    "format", "formatting", "style", "naming", "indent", "indentation",
    "tabs", "spaces", "prefer", "editor", "theme", "font", "verbose",
    "terse", "emoji", "comment style",
]

DEFAULT_CONFIG: Dict = {
    "memory_dir": "memory",
    "chunking": {
        "min_chunk_size": 1,
        "max_chunk_size": 8,
    },
    "boundaries": {
        "command_prefix": "tlc",
        "soft_signals": DEFAULT_SOFT_SIGNALS,
        "semantic_threshold": 0.15,
        "min_keywords": 5,
        "min_keyword_length": 4,
    },
    "classifier": {
        "infra_keywords": DEFAULT_INFRA_KEYWORDS,
        "personal_keywords": DEFAULT_PERSONAL_KEYWORDS,
    },
    "capture": {
        "rate_limit": {"limit": 30, "window_seconds": 60},
        "dedup_window_seconds": 3600,
        "max_exchanges": 200,
        "max_exchange_chars": 50000,
        "max_projects": 1024,
        "max_fingerprints": 5000,
        "buffer_threshold": 5,
    },
    "embedding": {
        "backend": "sentence_transformers",
        "sentence_transformers_model": "sentence-transformers/all-MiniLM-L6-v2",
    },
    "search": {
        "top_k": 10,
        "snippet_chars": 300,
    },
    "recall": {
        "scope": "workspace",
        "similarity_weight": 0.5,
        "recency_weight": 0.25,
        "relevance_weight": 0.25,
        "permanent_boost": 1.2,
        "recency_half_life_days": 7,
        "min_score": None,
    },
    "vector_store": {
        "backend": "qdrant",
        "qdrant": {
            "host": "localhost",
            "port": 6333,
            # ":memory:" or a directory path selects the embedded client
            "location": None,
            "path": None,
            "collection_prefix": "convmem",
        },
    },
}


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """Merge ``override`` into ``base`` in place, recursing into nested dicts."""
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _read_project_config(root: Path) -> Dict:
    path = root / PROJECT_CONFIG_FILE
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable {path}: {e}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring {path}: top level must be an object")
        return {}
    return data


def load_config(root: Path | None = None) -> Dict:
    """Load configuration.

    Starts from ``DEFAULT_CONFIG``, merges the optional per-project
    ``.convmem.json`` and applies environment overrides.

    Args:
        root: Project root, or None for defaults plus environment only

    Returns:
        A fresh configuration dictionary
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if root is not None:
        _deep_merge(config, _read_project_config(Path(root)))

    qdrant = config["vector_store"]["qdrant"]
    qdrant["host"] = os.getenv("QDRANT_HOST", qdrant["host"])
    qdrant["port"] = int(os.getenv("QDRANT_PORT", str(qdrant["port"])))
    if os.getenv("QDRANT_PATH"):
        qdrant["path"] = os.getenv("QDRANT_PATH")

    embedding = config["embedding"]
    embedding["backend"] = os.getenv("CONVMEM_EMBEDDING_BACKEND", embedding["backend"])
    embedding["sentence_transformers_model"] = os.getenv(
        "CONVMEM_EMBEDDING_MODEL", embedding["sentence_transformers_model"]
    )
    config["memory_dir"] = os.getenv("CONVMEM_MEMORY_DIR", config["memory_dir"])

    return config


def cfg_fingerprint(cfg: Dict) -> str:
    """Generate fingerprint hash for config."""
    payload = json.dumps(cfg, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return hashlib.sha256(payload).hexdigest()
