"""End-to-end document workflow: gate check, progress steps and synthesis."""

from typing import AsyncIterator, Optional

from document_copilot.models.api import DocumentRequest
from document_copilot.models.protocol import DeltaType, ProtocolDelta
from document_copilot.models.synthesis import SessionState, SynthesisRequest
from document_copilot.models.workflow import WorkflowDecision
from document_copilot.services.attachment_store import AttachmentStore
from document_copilot.services.synthesis_service import SynthesisService, SynthesisSession
from document_copilot.services.workflow_gate import WorkflowGate
from document_copilot.utils.logging import get_logger

logger = get_logger("document_workflow_service")


class WorkflowRun:
    """
    A document workflow whose gate decision is already known.

    When the decision is not ready, iterating yields a single
    ``workflow-guidance`` delta. Otherwise it yields the ``workflow-step``
    progress deltas, the synthesis deltas and, on success, ``workflow-complete``.
    """

    def __init__(
        self,
        scope_id: str,
        request: DocumentRequest,
        decision: WorkflowDecision,
        session: Optional[SynthesisSession],
    ) -> None:
        self.scope_id = scope_id
        self.request = request
        self.decision = decision
        self.session = session

    def cancel(self) -> None:
        if self.session is not None:
            self.session.cancel()

    def __aiter__(self) -> AsyncIterator[ProtocolDelta]:
        return self.deltas()

    async def deltas(self) -> AsyncIterator[ProtocolDelta]:
        if self.session is None:
            yield ProtocolDelta(
                type=DeltaType.WORKFLOW_GUIDANCE,
                content=self.decision.guidance,
                message_id=self.request.message_id,
            )
            return

        message_id = self.request.message_id
        yield ProtocolDelta(
            type=DeltaType.WORKFLOW_STEP,
            content="Step 1: Assessing template requirements...",
            message_id=message_id,
        )
        yield ProtocolDelta(
            type=DeltaType.WORKFLOW_STEP,
            content="Step 2: Assessing source files...",
            message_id=message_id,
        )
        yield ProtocolDelta(
            type=DeltaType.WORKFLOW_STEP,
            content="Step 3: Generating document...",
            message_id=message_id,
        )

        session_deltas = self.session.deltas()
        try:
            async for delta in session_deltas:
                yield delta
        finally:
            await session_deltas.aclose()

        if self.session.state == SessionState.FINISHED:
            yield ProtocolDelta(
                type=DeltaType.WORKFLOW_COMPLETE,
                content=f'Document "{self.request.title}" has been successfully created.',
                message_id=message_id,
                document_id=self.session.document_id,
            )


class DocumentWorkflowService:
    """Orchestrate the gate check and synthesis for one document request."""

    def __init__(
        self,
        workflow_gate: WorkflowGate,
        attachment_store: AttachmentStore,
        synthesis_service: SynthesisService,
    ) -> None:
        self._gate = workflow_gate
        self._attachments = attachment_store
        self._synthesis = synthesis_service

    def run(self, scope_id: str, request: DocumentRequest) -> WorkflowRun:
        """
        Evaluate the gate and prepare the run.

        The gate decision is available on the returned run before any delta is
        produced, so callers can reject blocked requests up front.
        """
        decision = self._gate.evaluate(
            scope_id,
            require_template=request.require_template,
            require_sources=request.require_sources,
        )
        if not decision.ready:
            logger.info(
                f"Document workflow blocked: scope={scope_id}, "
                f"missing={[m.value for m in decision.missing]}"
            )
            return WorkflowRun(scope_id, request, decision, session=None)

        template_content = None
        if request.require_template:
            template = self._attachments.latest_template(scope_id)
            if template is not None:
                template_content = template.content
                logger.info(f"Using template: {template.file_name}")

        session = self._synthesis.start(
            SynthesisRequest(
                scope_id=scope_id,
                title=request.title,
                description=request.description,
                kind=request.kind,
                template_content=template_content,
                document_id=request.document_id,
                message_id=request.message_id,
                k=request.k,
            )
        )
        return WorkflowRun(scope_id, request, decision, session=session)
