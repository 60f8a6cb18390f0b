"""Embedding and search result models."""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class EmbeddingRecord(BaseModel):
    """Embedding vector stored for a single chunk."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Stable record identifier ('{source_id}:{sequence}:{seq}')")
    source_id: str = Field(..., description="Source the chunk belongs to")
    chunk_text: str = Field(..., description="Chunk text returned to retrieval callers")
    vector: List[float] = Field(..., description="Embedding vector of length D")
    sequence: int = Field(..., ge=0, description="Chunk position within its source")


class SearchResult(BaseModel):
    """A single retrieval hit."""

    content: str = Field(..., description="Chunk text")
    similarity: float = Field(..., description="1 - cosine distance between query and chunk")
    source_id: str = Field(..., description="Source the chunk belongs to")
