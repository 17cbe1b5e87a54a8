"""Searcher Interface."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

from ..core.models import SearchResult


class Searcher:
    """Abstract base class for memory search."""

    def search(self, root: Path, query: str, context: Optional[Dict] = None) -> SearchResult:
        """Search the memory of one project.

        Args:
            root: Project root path
            query: Search query text
            context: Recall context (workspace, scope, types, limit)

        Returns:
            SearchResult whose ``source`` names the tier that answered
        """
        raise NotImplementedError
