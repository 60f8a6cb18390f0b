"""Ingestion coordinator: sanitise, chunk, embed and index uploaded text."""

import uuid
from typing import Optional

from document_copilot.config import Settings, get_settings
from document_copilot.models.api import IngestionResult
from document_copilot.models.attachment import FileAttachment, FileKind
from document_copilot.services.attachment_store import AttachmentStore
from document_copilot.services.chunking_service import ChunkingService
from document_copilot.services.embedding_service import EmbeddingService
from document_copilot.services.vector_store import VectorStore
from document_copilot.utils.errors import EmptyContentError, NotFoundError, ValidationError
from document_copilot.utils.logging import get_logger
from document_copilot.utils.text import normalize_text, sanitize_content

logger = get_logger("ingestion_service")


class IngestionService:
    """
    Turn extracted file text into searchable embedding records.

    Re-ingesting a source id is a fresh add: records are duplicated, not
    replaced. Call `delete_source` first to replace a source.
    """

    def __init__(
        self,
        chunking_service: ChunkingService,
        embedding_service: EmbeddingService,
        vector_store: VectorStore,
        attachment_store: AttachmentStore,
        settings: Optional[Settings] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._chunker = chunking_service
        self._embedder = embedding_service
        self._store = vector_store
        self._attachments = attachment_store

    async def ingest(self, scope_id: str, source_id: str, raw_text: str) -> IngestionResult:
        """
        Chunk, embed and index text for a source under a scope.

        A source with no registered attachment is recorded as a source file so
        the workflow gate sees it.

        Raises:
            EmptyContentError: If the text is empty after sanitisation
            EmbeddingProviderError: If embedding fails (nothing is indexed)
            DimensionMismatchError: If the vectors do not match the store dimension
        """
        result = await self._index(scope_id, source_id, raw_text)
        if self._attachments.get(scope_id, source_id) is None:
            content = sanitize_content(raw_text)
            attachment = self._attachments.add(
                FileAttachment(
                    id=str(uuid.uuid4()),
                    scope_id=scope_id,
                    source_id=source_id,
                    file_name=source_id,
                    kind=FileKind.SOURCE,
                    size=len(content.encode("utf-8")),
                    content=content,
                )
            )
            result.attachment_id = attachment.id
        return result

    async def _index(self, scope_id: str, source_id: str, raw_text: str) -> IngestionResult:
        sanitized = sanitize_content(raw_text or "")
        if not sanitized:
            raise EmptyContentError(source_id=source_id)

        normalized = normalize_text(sanitized)
        chunks = await self._chunker.chunk_text(normalized, source_id=source_id)
        if not chunks:
            raise EmptyContentError(source_id=source_id)

        vectors = await self._embedder.embed_batch([chunk.text for chunk in chunks])
        records = await self._store.index(scope_id, chunks, vectors)

        logger.info(
            f"Ingested source: scope={scope_id}, source={source_id}, chunks={len(chunks)}"
        )
        return IngestionResult(
            source_id=source_id,
            chunk_count=len(records),
            dimension=len(vectors[0]) if vectors else None,
            indexed=True,
        )

    async def ingest_file(
        self,
        scope_id: str,
        file_name: str,
        kind: FileKind,
        content: Optional[str],
        content_type: Optional[str] = None,
        size: Optional[int] = None,
    ) -> IngestionResult:
        """
        Register an uploaded file and index its text.

        Files whose text could not be extracted (``content is None``) are
        registered but not indexed.

        Raises:
            ValidationError: If the file exceeds MAX_FILE_SIZE_BYTES
            EmptyContentError: If extracted text is empty after sanitisation
        """
        if size is None:
            size = len(content.encode("utf-8")) if content else 0
        max_size = self.settings.max_file_size_bytes
        if size > max_size:
            raise ValidationError(
                f"File size should be less than {max_size / (1024 * 1024):g}MB",
                details={"size": size, "max_size": max_size},
            )

        source_id = str(uuid.uuid4())
        result = IngestionResult(source_id=source_id)
        stored_content: Optional[str] = None
        if content is not None:
            result = await self._index(scope_id, source_id, content)
            stored_content = sanitize_content(content)
        else:
            logger.warning(
                f"No text extracted for {file_name}; registering without embeddings",
                extra={"scope_id": scope_id, "source_id": source_id},
            )

        attachment = self._attachments.add(
            FileAttachment(
                id=str(uuid.uuid4()),
                scope_id=scope_id,
                source_id=source_id,
                file_name=file_name,
                kind=kind,
                content_type=content_type,
                size=size,
                content=stored_content,
            )
        )
        result.attachment_id = attachment.id
        return result

    async def delete_source(self, scope_id: str, source_id: str) -> int:
        """
        Remove a source's attachment and embeddings.

        Raises:
            NotFoundError: If neither an attachment nor records exist for the source
        """
        attachment = self._attachments.remove(scope_id, source_id)
        removed = await self._store.delete_source(source_id)
        if attachment is None and removed == 0:
            raise NotFoundError("File", source_id)
        logger.info(f"Deleted source: scope={scope_id}, source={source_id}, records={removed}")
        return removed
