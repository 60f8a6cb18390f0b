"""Scoped semantic search over ingested sources."""

from typing import List, Optional

from document_copilot.config import Settings, get_settings
from document_copilot.models.embedding import SearchResult
from document_copilot.services.embedding_service import EmbeddingService
from document_copilot.services.vector_store import VectorStore
from document_copilot.utils.logging import get_logger

logger = get_logger("retrieval_service")


class RetrievalService:
    """Embed a query and rank the scope's chunks against it."""

    def __init__(
        self,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._embedder = embedding_service
        self._store = vector_store

    async def find_relevant_content(
        self,
        scope_id: str,
        query_text: str,
        k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> List[SearchResult]:
        """
        Return up to k chunks under the scope, most similar first.

        An empty scope returns an empty list without embedding the query.

        Args:
            scope_id: Conversation whose sources are searched
            query_text: Free-text query
            k: Maximum results (defaults to RETRIEVAL_TOP_K)
            min_similarity: Strict lower bound on similarity (defaults to RETRIEVAL_MIN_SIMILARITY)
        """
        if not await self._store.has_sources(scope_id):
            logger.info(f"No sources for scope {scope_id}; skipping retrieval")
            return []

        if k is None:
            k = self.settings.retrieval.top_k
        if min_similarity is None:
            min_similarity = self.settings.retrieval.min_similarity

        query_vector = await self._embedder.embed(query_text)
        results = await self._store.search(scope_id, query_vector, k=k, min_similarity=min_similarity)

        logger.info(
            f"Retrieved content: scope={scope_id}, results={len(results)}, k={k}, "
            f"min_similarity={min_similarity}"
        )
        return [
            result.model_copy(update={"similarity": min(1.0, max(0.0, result.similarity))})
            for result in results
        ]
