"""Chunk models for document ingestion."""

from pydantic import BaseModel, ConfigDict, Field


class Chunk(BaseModel):
    """A bounded slice of a source's normalised text."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Chunk text content")
    source_id: str = Field(..., description="Source (file attachment) the chunk was cut from")
    sequence: int = Field(..., ge=0, description="0-based position of this chunk within its source")
