"""Qdrant-backed vector store."""

from __future__ import annotations

import asyncio
import itertools
import time
import uuid
from typing import Any, Dict, List, Optional, Sequence

import numpy as np
from qdrant_client import QdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    FilterSelector,
    MatchAny,
    MatchValue,
    PointStruct,
    VectorParams,
)

from document_copilot.config import Settings, get_settings
from document_copilot.models.chunk import Chunk
from document_copilot.models.embedding import EmbeddingRecord, SearchResult
from document_copilot.services.vector_store import (
    DEFAULT_MIN_SIMILARITY,
    DEFAULT_TOP_K,
    VectorStore,
)
from document_copilot.utils.errors import CopilotException, DimensionMismatchError, VectorStoreError
from document_copilot.utils.logging import get_logger

logger = get_logger("qdrant_vector_store")

# Deterministic namespace for generating stable point IDs from record ids
_POINT_ID_NAMESPACE = uuid.UUID("2f1d7c0e-5b7a-4c61-9a53-8d4e0c6b3a17")


class QdrantVectorStore(VectorStore):
    """
    Store embeddings in Qdrant.

    Strategy:
    - One collection for every scope (name configurable via `QDRANT_COLLECTION_NAME`)
    - Payload carries scope_id, source_id, sequence, insertion seq and chunk text
    - The scope -> source registry lives in process; searches filter on the registered source ids
    - Hits are re-sorted locally so insertion order breaks similarity ties
    """

    def __init__(
        self,
        client: Optional[QdrantClient] = None,
        collection_name: Optional[str] = None,
        dimension: Optional[int] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        super().__init__(dimension)
        self.settings = settings or get_settings()
        self._client = client
        self.collection_name = collection_name or self.settings.qdrant.collection_name
        self._scope_sources: Dict[str, Dict[str, None]] = {}
        self._collection_ready = False
        # seeded from the clock so insertion order stays monotonic across restarts
        self._seq = itertools.count(time.time_ns())
        self._lock = asyncio.Lock()

    def _get_client(self) -> QdrantClient:
        if self._client is not None:
            return self._client

        self._client = QdrantClient(
            url=self.settings.qdrant.url,
            api_key=self.settings.qdrant.api_key,
            timeout=self.settings.qdrant.timeout,
        )
        return self._client

    def _make_point_id(self, record_id: str) -> str:
        """Create a stable UUID point id for a record."""
        return str(uuid.uuid5(_POINT_ID_NAMESPACE, record_id))

    async def _run(self, operation: str, func, *args: Any, **kwargs: Any):
        """Run a blocking client call in a worker thread, wrapping client failures."""
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except CopilotException:
            raise
        except Exception as e:
            raise VectorStoreError(
                f"Qdrant {operation} failed",
                details={"collection": self.collection_name, "error": str(e)},
            ) from e

    async def _collection_exists(self) -> bool:
        if self._collection_ready:
            return True
        client = self._get_client()
        self._collection_ready = await self._run(
            "collection check", client.collection_exists, self.collection_name
        )
        return self._collection_ready

    async def ensure_collection(self, vector_size: int) -> None:
        """Ensure the Qdrant collection exists with the right vector size."""
        if self._collection_ready:
            return

        def _ensure() -> None:
            client = self._get_client()
            if client.collection_exists(self.collection_name):
                info = client.get_collection(self.collection_name)
                current_size = getattr(info.config.params.vectors, "size", None)
                if current_size is not None and int(current_size) != int(vector_size):
                    raise DimensionMismatchError(
                        expected=int(current_size),
                        actual=vector_size,
                        details={"collection": self.collection_name},
                    )
                return
            client.create_collection(
                collection_name=self.collection_name,
                vectors_config=VectorParams(size=vector_size, distance=Distance.COSINE),
            )

        await self._run("ensure collection", _ensure)
        self._collection_ready = True
        logger.info(f"Qdrant collection ensured: {self.collection_name} (vector_size={vector_size})")

    async def index(
        self, scope_id: str, chunks: Sequence[Chunk], vectors: Sequence[Sequence[float]]
    ) -> List[EmbeddingRecord]:
        if not chunks and not vectors:
            return []
        dimension = self._check_vectors(chunks, vectors)
        await self.ensure_collection(dimension)

        points: List[PointStruct] = []
        records: List[EmbeddingRecord] = []
        for chunk, vector in zip(chunks, vectors):
            seq = next(self._seq)
            record = EmbeddingRecord(
                id=f"{chunk.source_id}:{chunk.sequence}:{seq}",
                source_id=chunk.source_id,
                chunk_text=chunk.text,
                vector=list(vector),
                sequence=chunk.sequence,
            )
            points.append(
                PointStruct(
                    id=self._make_point_id(record.id),
                    vector=record.vector,
                    payload={
                        "scope_id": scope_id,
                        "source_id": chunk.source_id,
                        "sequence": chunk.sequence,
                        "seq": seq,
                        "text": chunk.text,
                    },
                )
            )
            records.append(record)

        client = self._get_client()
        await self._run(
            "upsert", client.upsert, collection_name=self.collection_name, points=points, wait=True
        )

        async with self._lock:
            if self._dimension is None:
                self._dimension = dimension
            sources = self._scope_sources.setdefault(scope_id, {})
            for chunk in chunks:
                sources[chunk.source_id] = None

        logger.info(
            f"Qdrant upsert complete: collection={self.collection_name}, scope={scope_id}, points={len(points)}"
        )
        return records

    async def search(
        self,
        scope_id: str,
        query_vector: Sequence[float],
        k: int = DEFAULT_TOP_K,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> List[SearchResult]:
        sources = list(self._scope_sources.get(scope_id, {}))
        if not sources:
            logger.debug(f"No sources registered for scope {scope_id}")
            return []
        self._check_query(query_vector, k)
        if np.linalg.norm(np.asarray(query_vector, dtype=np.float64)) == 0:
            # cosine similarity against a zero vector is 0, which never clears the threshold
            return []
        if not await self._collection_exists():
            return []

        client = self._get_client()
        scope_filter = Filter(must=[FieldCondition(key="source_id", match=MatchAny(any=sources))])
        # fetch every candidate above the threshold so ties at the k-th place are cut locally by seq
        candidates = await self._run(
            "count", client.count, collection_name=self.collection_name, count_filter=scope_filter, exact=True
        )
        response = await self._run(
            "search",
            client.query_points,
            collection_name=self.collection_name,
            query=list(query_vector),
            query_filter=scope_filter,
            limit=max(k, candidates.count),
            score_threshold=min_similarity,
            with_payload=True,
        )

        hits = [point for point in response.points if point.score > min_similarity]
        hits.sort(key=lambda point: (-point.score, point.payload.get("seq", 0)))
        return [
            SearchResult(
                content=point.payload.get("text", ""),
                similarity=float(point.score),
                source_id=point.payload.get("source_id", ""),
            )
            for point in hits[:k]
        ]

    async def register_source(self, scope_id: str, source_id: str) -> None:
        async with self._lock:
            self._scope_sources.setdefault(scope_id, {})[source_id] = None

    async def has_sources(self, scope_id: str) -> bool:
        return bool(self._scope_sources.get(scope_id))

    async def _delete_matching(self, key: str, value: str) -> int:
        if not await self._collection_exists():
            return 0
        client = self._get_client()
        selector = Filter(must=[FieldCondition(key=key, match=MatchValue(value=value))])
        result = await self._run(
            "count", client.count, collection_name=self.collection_name, count_filter=selector, exact=True
        )
        await self._run(
            "delete",
            client.delete,
            collection_name=self.collection_name,
            points_selector=FilterSelector(filter=selector),
            wait=True,
        )
        return result.count

    async def delete_source(self, source_id: str) -> int:
        async with self._lock:
            for sources in self._scope_sources.values():
                sources.pop(source_id, None)
        removed = await self._delete_matching("source_id", source_id)
        logger.info(f"Deleted source {source_id} from {self.collection_name}: points={removed}")
        return removed

    async def delete_scope(self, scope_id: str) -> int:
        async with self._lock:
            self._scope_sources.pop(scope_id, None)
        removed = await self._delete_matching("scope_id", scope_id)
        logger.info(f"Deleted scope {scope_id} from {self.collection_name}: points={removed}")
        return removed

    async def count(self, scope_id: Optional[str] = None) -> int:
        if not await self._collection_exists():
            return 0
        client = self._get_client()
        count_filter = None
        if scope_id is not None:
            sources = list(self._scope_sources.get(scope_id, {}))
            if not sources:
                return 0
            count_filter = Filter(must=[FieldCondition(key="source_id", match=MatchAny(any=sources))])
        result = await self._run(
            "count", client.count, collection_name=self.collection_name, count_filter=count_filter, exact=True
        )
        return result.count
