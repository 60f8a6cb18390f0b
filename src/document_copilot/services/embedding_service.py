"""Embedding generation service (provider-agnostic)."""

from __future__ import annotations

from typing import Any, List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from document_copilot.config import EmbeddingProvider, Settings, get_settings
from document_copilot.utils.errors import EmbeddingProviderError, EmptyContentError
from document_copilot.utils.logging import get_logger
from document_copilot.utils.text import normalize_text

logger = get_logger("embedding_service")


class EmbeddingService:
    """
    Generate embeddings for text using a configurable provider.

    Providers:
    - openai: OpenAI direct API
    - azure: Azure OpenAI (requires a deployment)

    Inputs are NFKC-normalised with whitespace collapsed before they are sent,
    so ingestion and query text are embedded the same way.
    """

    def __init__(self, client: Any = None, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self._provider = self.settings.embedding.embedding_provider
        self._model_name = self.settings.embedding.resolved_model_name
        self._client = client  # lazy unless injected

    @property
    def model_name(self) -> str:
        return self._model_name

    @property
    def dimension(self) -> Optional[int]:
        return self.settings.embedding.embedding_dimension

    def _get_client(self):
        """Create the appropriate OpenAI client for the selected provider."""
        if self._client is not None:
            return self._client

        from openai import AsyncAzureOpenAI, AsyncOpenAI

        embedding = self.settings.embedding
        if self._provider == EmbeddingProvider.OPENAI:
            if not embedding.openai_api_key:
                raise EmbeddingProviderError(
                    "OPENAI_API_KEY is required when EMBEDDING_PROVIDER=openai",
                    model=self._model_name,
                )
            self._client = AsyncOpenAI(
                api_key=embedding.openai_api_key,
                base_url=embedding.openai_base_url,
                timeout=embedding.embedding_timeout,
                max_retries=0,
            )
            return self._client

        if self._provider == EmbeddingProvider.AZURE:
            if not embedding.is_configured:
                raise EmbeddingProviderError(
                    "Azure embeddings require AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY, and EMBEDDING_DEPLOYMENT_NAME",
                    model=self._model_name,
                )
            self._client = AsyncAzureOpenAI(
                api_key=embedding.azure_openai_api_key,
                azure_endpoint=embedding.azure_openai_endpoint,
                api_version=embedding.azure_openai_api_version,
                timeout=embedding.embedding_timeout,
                max_retries=0,
            )
            return self._client

        raise EmbeddingProviderError(
            f"Unsupported embedding provider: {self._provider}", model=self._model_name
        )

    async def _embed_batch(self, inputs: List[str]) -> List[List[float]]:
        """Embed one batch of texts."""
        client = self._get_client()
        try:
            resp = await client.embeddings.create(model=self._model_name, input=inputs)
            return [list(d.embedding) for d in resp.data]
        except Exception as e:
            raise EmbeddingProviderError(
                f"Embedding request failed: {e}",
                model=self._model_name,
                details={"error_type": type(e).__name__},
            ) from e

    async def _embed_batch_with_retry(self, inputs: List[str]) -> List[List[float]]:
        """Embed a batch, retrying only when EMBEDDING_MAX_RETRIES allows it."""
        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.settings.embedding.embedding_max_retries),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_exception_type(EmbeddingProviderError),
        ):
            with attempt:
                return await self._embed_batch(inputs)
        # unreachable due to reraise=True, but keeps type checkers happy
        raise EmbeddingProviderError("Embedding retries exhausted", model=self._model_name)

    async def embed(self, text: str) -> List[float]:
        """
        Embed a single text.

        Raises:
            EmptyContentError: If the text is empty after normalisation
            EmbeddingProviderError: If the provider fails
        """
        vectors = await self.embed_batch([text])
        return vectors[0]

    async def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts, preserving input order.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in the same order

        Raises:
            EmptyContentError: If any text is empty after normalisation
            EmbeddingProviderError: If the provider fails or returns the wrong number of vectors
        """
        if not texts:
            return []

        inputs = [normalize_text(t) for t in texts]
        for index, value in enumerate(inputs):
            if not value:
                raise EmptyContentError(
                    "Cannot embed empty text", details={"index": index}
                )

        batch_size = max(1, self.settings.embedding.embedding_batch_size)
        provider_str = self._provider.value if hasattr(self._provider, "value") else str(self._provider)
        logger.info(
            f"Generating embeddings: provider={provider_str}, model={self._model_name}, "
            f"texts={len(inputs)}, batch_size={batch_size}"
        )

        out: List[List[float]] = []
        for start in range(0, len(inputs), batch_size):
            batch = inputs[start : start + batch_size]
            vectors = await self._embed_batch_with_retry(batch)
            if len(vectors) != len(batch):
                raise EmbeddingProviderError(
                    "Embedding response size mismatch",
                    model=self._model_name,
                    details={"expected": len(batch), "got": len(vectors)},
                )
            out.extend(vectors)

        if out:
            logger.info(f"Embeddings generated successfully: count={len(out)}, dimension={len(out[0])}")
        return out
