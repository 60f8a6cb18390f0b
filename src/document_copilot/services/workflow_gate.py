"""Deterministic precondition check run before document synthesis."""

from typing import List

from document_copilot.models.attachment import FileKind
from document_copilot.models.workflow import NextAction, Precondition, WorkflowDecision
from document_copilot.services.attachment_store import AttachmentStore
from document_copilot.utils.logging import get_logger

logger = get_logger("workflow_gate")

TEMPLATE_GUIDANCE = """No template found. To upload a template:
1. Use the file upload area in the chat interface
2. Select your template file (.docx, .pdf, or .txt)
3. Choose "Template" as the file type in the upload dialog
4. The template will be automatically processed and ready for use

Once uploaded, run this workflow again to continue with document creation."""

SOURCE_FILES_GUIDANCE = """No source files found. To upload source files:
1. Use the file upload area in the chat interface
2. Select your source files (documents, data, or images)
3. Choose "Source" as the file type in the upload dialog
4. You can upload multiple files at once
5. Supported formats: .docx, .pdf, .txt, .csv, .json, .xlsx, images

Source files should contain the data and information you want to extract for your document. Once uploaded, run this workflow again to continue."""


class WorkflowGate:
    """Decide whether synthesis may proceed for a scope.

    Evaluation only reads attachment metadata, so repeated calls without an
    intervening upload return equal decisions.
    """

    def __init__(self, attachment_store: AttachmentStore) -> None:
        self._attachments = attachment_store

    def evaluate(
        self, scope_id: str, require_template: bool = True, require_sources: bool = True
    ) -> WorkflowDecision:
        missing: List[Precondition] = []
        guidance: List[str] = []
        next_action = None

        if require_template and self._attachments.count(scope_id, FileKind.TEMPLATE) == 0:
            missing.append(Precondition.TEMPLATE)
            guidance.append(TEMPLATE_GUIDANCE)
            next_action = NextAction.UPLOAD_TEMPLATE

        if require_sources and self._attachments.count(scope_id, FileKind.SOURCE) == 0:
            missing.append(Precondition.SOURCE_FILES)
            guidance.append(SOURCE_FILES_GUIDANCE)
            next_action = next_action or NextAction.UPLOAD_SOURCE_FILES

        decision = WorkflowDecision(
            ready=not missing,
            missing=missing,
            guidance="\n\n".join(guidance),
            next_action=next_action,
        )
        logger.debug(
            f"Workflow gate evaluated: scope={scope_id}, ready={decision.ready}, "
            f"missing={[m.value for m in missing]}"
        )
        return decision
