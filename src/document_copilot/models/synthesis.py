"""Synthesis session models."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from document_copilot.models.artifact import ArtifactKind
from document_copilot.models.template import TemplateSection


class SessionState(str, Enum):
    """Lifecycle of a synthesis session."""

    PENDING = "pending"
    RETRIEVING = "retrieving"
    GENERATING = "generating"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset([SessionState.FINISHED, SessionState.FAILED, SessionState.CANCELLED])


class SynthesisRequest(BaseModel):
    """Everything a synthesis session needs to produce one document."""

    scope_id: str = Field(..., description="Conversation whose sources are searched")
    title: str = Field(..., min_length=1, description="Document title")
    description: str = Field("", description="What the document should cover")
    kind: ArtifactKind = Field(ArtifactKind.TEXT)
    template_content: Optional[str] = Field(None, description="Template body to follow, if any")
    document_id: Optional[str] = Field(None, description="Document id; generated when omitted")
    message_id: Optional[str] = Field(None, description="Chat message the stream belongs to")
    k: Optional[int] = Field(None, ge=1, description="Snippets to retrieve")
    min_similarity: Optional[float] = Field(None, ge=0.0, le=1.0)


class SectionRequest(BaseModel):
    """One template section to write from the scope's sources."""

    scope_id: str = Field(..., description="Conversation whose sources are searched")
    section: TemplateSection
    document_id: Optional[str] = Field(None, description="Document the section belongs to")
    message_id: Optional[str] = Field(None, description="Chat message the stream belongs to")
    k: Optional[int] = Field(None, ge=1, description="Snippets to retrieve")
    min_similarity: Optional[float] = Field(None, ge=0.0, le=1.0)
