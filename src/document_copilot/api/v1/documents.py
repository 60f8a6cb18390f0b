"""Document and section generation endpoints (Server-Sent Events)."""

from typing import AsyncIterator

from fastapi import APIRouter, Depends, status
from fastapi.responses import StreamingResponse

from document_copilot.dependencies import get_document_workflow_service, get_synthesis_service
from document_copilot.models.api import DocumentRequest, SectionWriteRequest
from document_copilot.models.protocol import DeltaType, ProtocolDelta
from document_copilot.services.document_workflow_service import DocumentWorkflowService
from document_copilot.services.synthesis_service import SynthesisService
from document_copilot.utils.errors import WorkflowBlockedError
from document_copilot.utils.logging import get_logger, log_context

logger = get_logger("api.documents")

router = APIRouter(tags=["documents"])


def _event_stream(deltas: AsyncIterator[ProtocolDelta]) -> StreamingResponse:
    """Wrap a delta iterator as an SSE response ending in ``data: [DONE]``."""

    async def generate_stream():
        """Generator function for streaming deltas."""
        try:
            async for delta in deltas:
                yield delta.to_sse()
            yield "data: [DONE]\n\n"
        except Exception as e:
            logger.error(f"Error in document stream: {e}", exc_info=True)
            yield ProtocolDelta(type=DeltaType.ERROR, content=str(e)).to_sse()
        finally:
            await deltas.aclose()

    return StreamingResponse(
        generate_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.post("/scopes/{scope_id}/documents", status_code=status.HTTP_200_OK)
async def generate_document(
    scope_id: str,
    request: DocumentRequest,
    workflow: DocumentWorkflowService = Depends(get_document_workflow_service),
):
    """
    Generate a document and stream its protocol deltas.

    Each delta is sent as ``data: <json>`` followed by a final ``data: [DONE]``.
    Returns 409 with upload guidance when the workflow preconditions are not met.
    """
    with log_context(scope_id=scope_id, document_id=request.document_id):
        run = workflow.run(scope_id, request)
    if not run.decision.ready:
        raise WorkflowBlockedError(
            missing=[m.value for m in run.decision.missing],
            guidance=run.decision.guidance,
            next_action=run.decision.next_action.value if run.decision.next_action else None,
        )

    return _event_stream(run.deltas())


@router.post("/scopes/{scope_id}/sections", status_code=status.HTTP_200_OK)
async def write_section(
    scope_id: str,
    request: SectionWriteRequest,
    synthesis: SynthesisService = Depends(get_synthesis_service),
):
    """Write one template section from the scope's sources as ``section-content`` deltas."""
    with log_context(scope_id=scope_id, document_id=request.document_id):
        logger.info(f'Writing section "{request.title}"')
        session = synthesis.write_section(
            scope_id,
            request.to_section(),
            document_id=request.document_id,
            message_id=request.message_id,
            k=request.k,
        )
    return _event_stream(session.deltas())
