"""Client-side document artifact model."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ArtifactKind(str, Enum):
    """Kind of document being generated."""

    TEXT = "text"
    CODE = "code"
    SHEET = "sheet"
    IMAGE = "image"


class ArtifactStatus(str, Enum):
    """Whether the artifact is still receiving deltas."""

    IDLE = "idle"
    STREAMING = "streaming"


class Artifact(BaseModel):
    """The document being built from a stream of protocol deltas."""

    model_config = ConfigDict(frozen=True)

    document_id: str = Field("init", description="Id of the document this artifact renders")
    kind: ArtifactKind = Field(ArtifactKind.TEXT)
    title: str = Field("")
    content: str = Field("")
    status: ArtifactStatus = Field(ArtifactStatus.IDLE)
    is_visible: bool = Field(False)
    error: Optional[str] = Field(None, description="Last error reported for this document")


INITIAL_ARTIFACT = Artifact()
