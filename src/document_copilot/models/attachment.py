"""File attachment models (ingestion metadata read by the workflow gate)."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class FileKind(str, Enum):
    """Role an uploaded file plays in document generation."""

    TEMPLATE = "template"
    SOURCE = "source"


class FileAttachment(BaseModel):
    """An uploaded file registered under a scope."""

    id: str = Field(..., description="Attachment id")
    scope_id: str = Field(..., description="Conversation the file was uploaded to")
    source_id: str = Field(..., description="Source id used for the file's embeddings")
    file_name: str = Field(..., description="Original file name")
    kind: FileKind = Field(..., description="template or source")
    content_type: Optional[str] = Field(None, description="MIME type reported by the uploader")
    size: int = Field(0, ge=0, description="File size in bytes")
    # None when no text could be extracted; such files are registered but never indexed
    content: Optional[str] = Field(None, description="Extracted text content")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_content(self) -> bool:
        return bool(self.content)
