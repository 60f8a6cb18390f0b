import pytest

from document_copilot.models.attachment import FileAttachment, FileKind
from document_copilot.models.workflow import NextAction, Precondition
from document_copilot.services.workflow_gate import SOURCE_FILES_GUIDANCE, TEMPLATE_GUIDANCE


def _attach(store, scope_id, kind, source_id):
    store.add(
        FileAttachment(
            id=f"att-{source_id}",
            scope_id=scope_id,
            source_id=source_id,
            file_name=f"{source_id}.txt",
            kind=kind,
            content="text",
        )
    )


class TestWorkflowGate:
    """Test WorkflowGate."""

    def test_empty_scope_is_blocked_on_both(self, workflow_gate):
        decision = workflow_gate.evaluate("chat-2", require_template=True, require_sources=True)

        assert decision.ready is False
        assert decision.missing == [Precondition.TEMPLATE, Precondition.SOURCE_FILES]
        assert decision.guidance == f"{TEMPLATE_GUIDANCE}\n\n{SOURCE_FILES_GUIDANCE}"
        assert decision.guidance.startswith("No template found.")
        assert decision.next_action == NextAction.UPLOAD_TEMPLATE

    def test_template_only_is_blocked_on_sources(self, workflow_gate, attachment_store):
        _attach(attachment_store, "conv-1", FileKind.TEMPLATE, "tpl")

        decision = workflow_gate.evaluate("conv-1")

        assert decision.ready is False
        assert decision.missing == [Precondition.SOURCE_FILES]
        assert decision.guidance == SOURCE_FILES_GUIDANCE
        assert decision.next_action == NextAction.UPLOAD_SOURCE_FILES

    def test_template_and_sources_is_ready(self, workflow_gate, attachment_store):
        _attach(attachment_store, "conv-1", FileKind.TEMPLATE, "tpl")
        _attach(attachment_store, "conv-1", FileKind.SOURCE, "src")

        decision = workflow_gate.evaluate("conv-1")

        assert decision.ready is True
        assert decision.missing == []
        assert decision.guidance == ""
        assert decision.next_action is None

    def test_uploads_in_other_scopes_do_not_count(self, workflow_gate, attachment_store):
        _attach(attachment_store, "conv-2", FileKind.TEMPLATE, "tpl")
        _attach(attachment_store, "conv-2", FileKind.SOURCE, "src")

        assert workflow_gate.evaluate("conv-1").ready is False

    @pytest.mark.parametrize(
        "require_template,require_sources,expected",
        [
            (False, True, [Precondition.SOURCE_FILES]),
            (True, False, [Precondition.TEMPLATE]),
            (False, False, []),
        ],
    )
    def test_requirements_can_be_relaxed(self, workflow_gate, require_template, require_sources, expected):
        decision = workflow_gate.evaluate(
            "conv-1", require_template=require_template, require_sources=require_sources
        )
        assert decision.missing == expected
        assert decision.ready is (not expected)

    def test_evaluation_is_idempotent(self, workflow_gate, attachment_store):
        _attach(attachment_store, "conv-1", FileKind.SOURCE, "src")

        assert workflow_gate.evaluate("conv-1") == workflow_gate.evaluate("conv-1")

    @pytest.mark.asyncio
    async def test_ingested_source_satisfies_the_gate(self, workflow_gate, ingestion_service):
        await ingestion_service.ingest("chat-9", "src-1", "Revenue grew 12% in Q1.")

        decision = workflow_gate.evaluate("chat-9", require_template=False, require_sources=True)

        assert decision.ready is True
        assert decision.missing == []
