"""Scoped vector storage and cosine-similarity search."""

from __future__ import annotations

import asyncio
import itertools
from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Optional, Sequence

import numpy as np

from document_copilot.models.chunk import Chunk
from document_copilot.models.embedding import EmbeddingRecord, SearchResult
from document_copilot.utils.errors import DimensionMismatchError, ValidationError
from document_copilot.utils.logging import get_logger

logger = get_logger("vector_store")

DEFAULT_TOP_K = 10
DEFAULT_MIN_SIMILARITY = 0.3


class VectorStore(ABC):
    """
    Embedding records grouped by source, with sources registered under scopes.

    A search under scope S only ranks records whose source is registered under S.
    """

    def __init__(self, dimension: Optional[int] = None) -> None:
        self._dimension = dimension

    @property
    def dimension(self) -> Optional[int]:
        """Vector length D, fixed at construction or by the first indexed vector."""
        return self._dimension

    def _check_vectors(self, chunks: Sequence[Chunk], vectors: Sequence[Sequence[float]]) -> int:
        """Validate a write and return the dimension it uses."""
        if len(chunks) != len(vectors):
            raise ValidationError(
                "Chunks and vectors length mismatch",
                details={"chunks": len(chunks), "vectors": len(vectors)},
            )
        expected = self._dimension if self._dimension is not None else len(vectors[0])
        if expected <= 0:
            raise ValidationError("Embedding vectors must not be empty")
        for vector in vectors:
            if len(vector) != expected:
                raise DimensionMismatchError(expected=expected, actual=len(vector))
        return expected

    def _check_query(self, query_vector: Sequence[float], k: int) -> None:
        if k < 1:
            raise ValidationError("k must be >= 1", details={"k": k})
        if self._dimension is not None and len(query_vector) != self._dimension:
            raise DimensionMismatchError(expected=self._dimension, actual=len(query_vector))

    @abstractmethod
    async def index(
        self, scope_id: str, chunks: Sequence[Chunk], vectors: Sequence[Sequence[float]]
    ) -> List[EmbeddingRecord]:
        """Store one record per chunk and register each chunk's source under the scope."""

    @abstractmethod
    async def search(
        self,
        scope_id: str,
        query_vector: Sequence[float],
        k: int = DEFAULT_TOP_K,
        min_similarity: float = DEFAULT_MIN_SIMILARITY,
    ) -> List[SearchResult]:
        """Top-k records under the scope with similarity strictly above min_similarity."""

    @abstractmethod
    async def register_source(self, scope_id: str, source_id: str) -> None:
        """Register a source under a scope."""

    @abstractmethod
    async def has_sources(self, scope_id: str) -> bool:
        """Whether any source is registered under the scope."""

    @abstractmethod
    async def delete_source(self, source_id: str) -> int:
        """Delete a source's records and registrations. Returns the number of records removed."""

    @abstractmethod
    async def delete_scope(self, scope_id: str) -> int:
        """Delete every source registered under a scope. Returns the number of records removed."""

    @abstractmethod
    async def count(self, scope_id: Optional[str] = None) -> int:
        """Number of records under a scope, or in the whole store."""


class _Entry(NamedTuple):
    seq: int
    record: EmbeddingRecord
    array: np.ndarray


class InMemoryVectorStore(VectorStore):
    """
    Vector store held in process memory, ranked with numpy cosine similarity.

    Writes are built outside the lock and swapped in under it, so a search
    sees either none or all of a source's new records.
    """

    def __init__(self, dimension: Optional[int] = None) -> None:
        super().__init__(dimension)
        self._records: Dict[str, List[_Entry]] = {}
        self._scope_sources: Dict[str, Dict[str, None]] = {}
        self._seq = itertools.count()
        self._lock = asyncio.Lock()

    async def index(
        self, scope_id: str, chunks: Sequence[Chunk], vectors: Sequence[Sequence[float]]
    ) -> List[EmbeddingRecord]:
        if not chunks and not vectors:
            return []
        dimension = self._check_vectors(chunks, vectors)

        staged: Dict[str, List[_Entry]] = {}
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
            staged.setdefault(chunk.source_id, []).append(
                _Entry(seq=seq, record=record, array=np.asarray(vector, dtype=np.float64))
            )
            records.append(record)

        async with self._lock:
            if self._dimension is None:
                self._dimension = dimension
            elif self._dimension != dimension:
                raise DimensionMismatchError(expected=self._dimension, actual=dimension)
            sources = self._scope_sources.setdefault(scope_id, {})
            for source_id, entries in staged.items():
                # replace the list rather than extend it so concurrent readers keep a stable snapshot
                self._records[source_id] = self._records.get(source_id, []) + entries
                sources[source_id] = None

        logger.info(
            f"Indexed records: scope={scope_id}, records={len(records)}, sources={len(staged)}"
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

        entries = [entry for source_id in sources for entry in self._records.get(source_id, [])]
        if not entries:
            return []

        similarities = cosine_similarities(
            np.vstack([entry.array for entry in entries]),
            np.asarray(query_vector, dtype=np.float64),
        )
        ranked = sorted(range(len(entries)), key=lambda i: (-similarities[i], entries[i].seq))

        results: List[SearchResult] = []
        for i in ranked:
            similarity = float(similarities[i])
            if similarity <= min_similarity:
                break
            record = entries[i].record
            results.append(
                SearchResult(content=record.chunk_text, similarity=similarity, source_id=record.source_id)
            )
            if len(results) >= k:
                break
        return results

    async def register_source(self, scope_id: str, source_id: str) -> None:
        async with self._lock:
            self._scope_sources.setdefault(scope_id, {})[source_id] = None

    async def has_sources(self, scope_id: str) -> bool:
        return bool(self._scope_sources.get(scope_id))

    async def delete_source(self, source_id: str) -> int:
        async with self._lock:
            removed = self._records.pop(source_id, [])
            for sources in self._scope_sources.values():
                sources.pop(source_id, None)
        logger.info(f"Deleted source {source_id}: records={len(removed)}")
        return len(removed)

    async def delete_scope(self, scope_id: str) -> int:
        async with self._lock:
            sources = self._scope_sources.pop(scope_id, {})
            removed = sum(len(self._records.pop(source_id, [])) for source_id in sources)
        logger.info(f"Deleted scope {scope_id}: sources={len(sources)}, records={removed}")
        return removed

    async def count(self, scope_id: Optional[str] = None) -> int:
        if scope_id is None:
            return sum(len(entries) for entries in self._records.values())
        return sum(
            len(self._records.get(source_id, []))
            for source_id in self._scope_sources.get(scope_id, {})
        )


def cosine_similarities(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Row-wise cosine similarity; rows or queries with zero norm score 0."""
    similarities = np.zeros(matrix.shape[0], dtype=np.float64)
    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return similarities
    row_norms = np.linalg.norm(matrix, axis=1)
    mask = row_norms > 0
    similarities[mask] = (matrix[mask] @ query) / (row_norms[mask] * query_norm)
    return similarities
