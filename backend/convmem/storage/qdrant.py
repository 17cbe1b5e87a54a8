"""Qdrant vector database backend."""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List, Optional, Tuple

from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchValue,
    PointIdsList,
    PointStruct,
    VectorParams,
)

from ..core.models import VectorEntry
from .base import VectorStore

logger = logging.getLogger(__name__)


def point_id(entry_id: str) -> str:
    """Qdrant only accepts UUIDs or integers as point ids."""
    return str(uuid.uuid5(uuid.NAMESPACE_URL, f"convmem:{entry_id}"))


def _entry_from_point(payload: Dict, vector) -> VectorEntry:
    return VectorEntry(
        id=payload.get("entry_id", ""),
        text=payload.get("text", ""),
        type=payload.get("type", ""),
        source_file=payload.get("source_file", ""),
        workspace=payload.get("workspace", ""),
        timestamp=int(payload.get("timestamp", 0)),
        embedding=list(vector or []),
        permanent=bool(payload.get("permanent", False)),
    )


class QdrantVectorStore(VectorStore):

    def __init__(self, client: QdrantClient, collection_name: str):
        self.client = client
        self.collection_name = collection_name

    def _collection_exists(self) -> bool:
        return self.client.collection_exists(collection_name=self.collection_name)

    def _get_collection_vector_dim(self) -> Optional[int]:
        if not self._collection_exists():
            return None
        collection_info = self.client.get_collection(collection_name=self.collection_name)
        return collection_info.config.params.vectors.size

    def _ensure_collection(self, vector_dim: int) -> None:
        existing_dim = self._get_collection_vector_dim()
        if existing_dim is None:
            self.client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=vector_dim, distance=Distance.COSINE),
            )
            logger.info(f"Created collection '{self.collection_name}' (dim={vector_dim})")
        elif existing_dim != vector_dim:
            raise ValueError(
                f"Collection '{self.collection_name}' exists with dimension {existing_dim}, "
                f"but entry has dimension {vector_dim}. Please rebuild the index."
            )

    def insert(self, entry: VectorEntry) -> None:
        if not entry.embedding:
            raise ValueError(f"Entry {entry.id} has no embedding")
        self._ensure_collection(vector_dim=len(entry.embedding))
        self.client.upsert(
            collection_name=self.collection_name,
            points=[
                PointStruct(
                    id=point_id(entry.id),
                    vector=list(entry.embedding),
                    payload=entry.payload(),
                )
            ],
        )
        logger.debug(f"Upserted {entry.id} ({entry.type}) into '{self.collection_name}'")

    def get_all(self, source_file: Optional[str] = None) -> List[VectorEntry]:
        """Load all entries from Qdrant."""
        if not self._collection_exists():
            return []

        scroll_filter = None
        if source_file:
            scroll_filter = Filter(
                must=[FieldCondition(key="source_file", match=MatchValue(value=source_file))]
            )

        entries: List[VectorEntry] = []
        offset = None
        while True:
            points, next_offset = self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=scroll_filter,
                limit=256,
                offset=offset,
                with_payload=True,
                with_vectors=True,
            )
            for p in points:
                entries.append(_entry_from_point(p.payload or {}, p.vector))
            if next_offset is None:
                break
            offset = next_offset
        return entries

    def delete(self, entry_id: str) -> None:
        if not self._collection_exists():
            return
        self.client.delete(
            collection_name=self.collection_name,
            points_selector=PointIdsList(points=[point_id(entry_id)]),
        )

    def rebuild(self) -> None:
        """Delete the collection; it is recreated on the next insert."""
        if self._collection_exists():
            self.client.delete_collection(collection_name=self.collection_name)
            logger.info(f"Dropped collection '{self.collection_name}' for rebuild")

    def count(self) -> int:
        if not self._collection_exists():
            return 0
        return self.client.count(collection_name=self.collection_name, exact=True).count

    def search(self, embedding: List[float], limit: int) -> List[Tuple[float, VectorEntry]]:
        """Search using Qdrant's vector search."""
        if not self._collection_exists():
            return []
        results = self.client.query_points(
            collection_name=self.collection_name,
            query=list(embedding),
            limit=limit,
            with_payload=True,
            with_vectors=False,
        )
        hits: List[Tuple[float, VectorEntry]] = []
        for result in results.points:
            hits.append((float(result.score), _entry_from_point(result.payload or {}, None)))
        return hits

    def close(self) -> None:
        self.client.close()


def make_qdrant_client(cfg: Dict) -> QdrantClient:
    qdrant_cfg = cfg.get("vector_store", {}).get("qdrant", {})
    if qdrant_cfg.get("location"):
        return QdrantClient(location=qdrant_cfg["location"])
    if qdrant_cfg.get("path"):
        return QdrantClient(path=qdrant_cfg["path"])
    host = qdrant_cfg.get("host", "localhost")
    port = qdrant_cfg.get("port", 6333)
    return QdrantClient(host=host, port=port)
