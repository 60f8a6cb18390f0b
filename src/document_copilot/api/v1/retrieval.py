"""Scoped semantic search endpoint."""

from fastapi import APIRouter, Depends

from document_copilot.dependencies import get_retrieval_service
from document_copilot.models.api import SearchRequest, SearchResponse
from document_copilot.services.retrieval_service import RetrievalService
from document_copilot.utils.logging import log_context

router = APIRouter(tags=["retrieval"])


@router.post("/scopes/{scope_id}/search", response_model=SearchResponse)
async def search(
    scope_id: str,
    request: SearchRequest,
    retrieval: RetrievalService = Depends(get_retrieval_service),
):
    """Return the scope's chunks most relevant to the query. An empty scope returns no results."""
    with log_context(scope_id=scope_id):
        results = await retrieval.find_relevant_content(
            scope_id, request.query, k=request.k, min_similarity=request.min_similarity
        )
    return SearchResponse(scope_id=scope_id, results=results)
