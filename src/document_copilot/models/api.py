"""Request and response models for the HTTP API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from document_copilot.models.artifact import ArtifactKind
from document_copilot.models.attachment import FileAttachment, FileKind
from document_copilot.models.embedding import SearchResult
from document_copilot.models.template import TemplateSection


class FileUploadRequest(BaseModel):
    """An uploaded file whose text has already been extracted."""

    file_name: str = Field(..., min_length=1, description="Original file name")
    kind: FileKind = Field(FileKind.SOURCE, description="template or source")
    content: Optional[str] = Field(None, description="Extracted text (null when extraction failed)")
    content_type: Optional[str] = Field(None, description="MIME type")
    size: Optional[int] = Field(None, ge=0, description="File size in bytes")


class IngestionResult(BaseModel):
    """Outcome of ingesting one file."""

    attachment_id: Optional[str] = None
    source_id: str
    chunk_count: int = 0
    dimension: Optional[int] = None
    indexed: bool = False


class FileListResponse(BaseModel):
    scope_id: str
    files: List[FileAttachment] = Field(default_factory=list)


class SearchRequest(BaseModel):
    """Scoped semantic search request."""

    query: str = Field(..., min_length=1)
    k: Optional[int] = Field(None, ge=1, le=100)
    min_similarity: Optional[float] = Field(None, ge=0.0, le=1.0)


class SearchResponse(BaseModel):
    scope_id: str
    results: List[SearchResult] = Field(default_factory=list)


class WorkflowRequest(BaseModel):
    """Preconditions to check before synthesis."""

    require_template: bool = True
    require_sources: bool = True


class DocumentRequest(BaseModel):
    """Request to generate a document for a scope."""

    title: str = Field(..., min_length=1)
    description: str = ""
    kind: ArtifactKind = ArtifactKind.TEXT
    require_template: bool = True
    require_sources: bool = True
    k: Optional[int] = Field(None, ge=1, le=100)
    document_id: Optional[str] = None
    message_id: Optional[str] = None


class TemplateAnalysisRequest(BaseModel):
    """Template text to outline."""

    content: str = Field(..., min_length=1)


class TemplateAnalysisResponse(BaseModel):
    sections: List[TemplateSection] = Field(default_factory=list)
    message: str = ""


class SectionWriteRequest(BaseModel):
    """Request to write one template section for a scope."""

    title: str = Field(..., min_length=1)
    requirements: List[str] = Field(default_factory=list)
    parent_section: Optional[str] = None
    document_id: Optional[str] = None
    message_id: Optional[str] = None
    k: Optional[int] = Field(None, ge=1, le=100)

    def to_section(self) -> TemplateSection:
        return TemplateSection(
            title=self.title,
            level=2 if self.parent_section else 1,
            requirements=self.requirements,
            parent_section=self.parent_section,
        )
