"""Workflow gate endpoint."""

from fastapi import APIRouter, Depends

from document_copilot.dependencies import get_workflow_gate
from document_copilot.models.api import WorkflowRequest
from document_copilot.models.workflow import WorkflowDecision
from document_copilot.services.workflow_gate import WorkflowGate
from document_copilot.utils.logging import log_context

router = APIRouter(tags=["workflow"])


@router.post("/scopes/{scope_id}/workflow", response_model=WorkflowDecision)
async def evaluate_workflow(
    scope_id: str,
    request: WorkflowRequest,
    gate: WorkflowGate = Depends(get_workflow_gate),
):
    """Check whether document generation may proceed for the scope."""
    with log_context(scope_id=scope_id):
        return gate.evaluate(
            scope_id,
            require_template=request.require_template,
            require_sources=request.require_sources,
        )
