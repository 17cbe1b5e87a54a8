"""Memory search: semantic recall with a file-scan fallback."""

from .recall import RecallHit, SemanticRecall, UnavailableRecall, VectorSemanticRecall
from .searcher import SearchService, scan_files, search

__all__ = [
    "RecallHit",
    "SearchService",
    "SemanticRecall",
    "UnavailableRecall",
    "VectorSemanticRecall",
    "scan_files",
    "search",
]
