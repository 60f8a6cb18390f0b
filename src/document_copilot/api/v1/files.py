"""File ingestion endpoints."""

from fastapi import APIRouter, Depends, status

from document_copilot.dependencies import get_attachment_store, get_ingestion_service
from document_copilot.models.api import FileListResponse, FileUploadRequest, IngestionResult
from document_copilot.services.attachment_store import AttachmentStore
from document_copilot.services.ingestion_service import IngestionService
from document_copilot.utils.logging import get_logger, log_context

logger = get_logger("api.files")

router = APIRouter(prefix="/scopes/{scope_id}/files", tags=["files"])


@router.post("", response_model=IngestionResult, status_code=status.HTTP_201_CREATED)
async def upload_file(
    scope_id: str,
    request: FileUploadRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    """
    Ingest an uploaded file whose text has already been extracted.

    Templates and source files are both chunked and indexed; the workflow
    gate distinguishes them by ``kind``.
    """
    with log_context(scope_id=scope_id):
        logger.info(f"Ingesting file {request.file_name} ({request.kind.value})")
        return await ingestion.ingest_file(
            scope_id=scope_id,
            file_name=request.file_name,
            kind=request.kind,
            content=request.content,
            content_type=request.content_type,
            size=request.size,
        )


@router.get("", response_model=FileListResponse)
async def list_files(
    scope_id: str,
    attachments: AttachmentStore = Depends(get_attachment_store),
):
    """List the files registered under a scope, newest first."""
    return FileListResponse(scope_id=scope_id, files=attachments.list(scope_id))


@router.delete("/{source_id}", status_code=status.HTTP_200_OK)
async def delete_file(
    scope_id: str,
    source_id: str,
    ingestion: IngestionService = Depends(get_ingestion_service),
):
    """Remove a file and its embeddings."""
    with log_context(scope_id=scope_id):
        removed = await ingestion.delete_source(scope_id, source_id)
    return {"scope_id": scope_id, "source_id": source_id, "deleted_records": removed}
