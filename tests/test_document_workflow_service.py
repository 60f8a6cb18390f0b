import pytest

from document_copilot.models.api import DocumentRequest
from document_copilot.models.attachment import FileKind
from document_copilot.models.protocol import DeltaType
from document_copilot.models.synthesis import SessionState
from document_copilot.models.workflow import Precondition
from document_copilot.services.document_workflow_service import DocumentWorkflowService
from document_copilot.utils.errors import LLMError

from fakes import ScriptedLLMService


@pytest.fixture
def make_workflow(workflow_gate, attachment_store, make_synthesis_service):
    def _make(llm):
        return DocumentWorkflowService(workflow_gate, attachment_store, make_synthesis_service(llm))

    return _make


async def _upload(ingestion_service, template=True, source=True):
    if template:
        await ingestion_service.ingest_file(
            "chat-1", "template.md", FileKind.TEMPLATE, "# Summary\n- Must state revenue growth\n"
        )
    if source:
        await ingestion_service.ingest_file(
            "chat-1", "q1.txt", FileKind.SOURCE, "Revenue grew 12% in Q1. Staff count is 40."
        )


class TestDocumentWorkflowService:
    """Test DocumentWorkflowService."""

    @pytest.mark.asyncio
    async def test_blocked_run_yields_only_guidance(self, make_workflow):
        llm = ScriptedLLMService(["x"])
        run = make_workflow(llm).run("chat-1", DocumentRequest(title="Q1 Report", message_id="msg-1"))

        deltas = [d async for d in run]

        assert run.decision.ready is False
        assert run.session is None
        assert [d.type for d in deltas] == [DeltaType.WORKFLOW_GUIDANCE]
        assert deltas[0].content == run.decision.guidance
        assert deltas[0].message_id == "msg-1"
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_ready_run_streams_steps_document_and_completion(self, make_workflow, ingestion_service):
        await _upload(ingestion_service)
        llm = ScriptedLLMService(["## Summary\n", "Revenue grew 12%."])
        run = make_workflow(llm).run(
            "chat-1", DocumentRequest(title="Q1 Report", description="revenue growth", document_id="doc-1")
        )

        deltas = [d async for d in run]
        types = [d.type for d in deltas]

        assert types[:3] == [DeltaType.WORKFLOW_STEP] * 3
        assert deltas[0].content == "Step 1: Assessing template requirements..."
        assert types[3:7] == [DeltaType.ID, DeltaType.KIND, DeltaType.TITLE, DeltaType.CLEAR]
        assert types[-2:] == [DeltaType.FINISH, DeltaType.WORKFLOW_COMPLETE]
        assert deltas[-1].content == 'Document "Q1 Report" has been successfully created.'
        assert deltas[-1].document_id == "doc-1"
        assert run.session.state == SessionState.FINISHED

    @pytest.mark.asyncio
    async def test_latest_template_is_passed_to_synthesis(self, make_workflow, ingestion_service):
        await _upload(ingestion_service)
        llm = ScriptedLLMService(["ok"])
        run = make_workflow(llm).run("chat-1", DocumentRequest(title="Q1 Report"))

        [d async for d in run]

        assert run.session.request.template_content == "# Summary\n- Must state revenue growth"
        user_prompt = llm.calls[0][1]["content"]
        assert "Template outline:\n- Summary (requirements: Must state revenue growth)" in user_prompt

    @pytest.mark.asyncio
    async def test_template_not_required_is_not_used(self, make_workflow, ingestion_service):
        await _upload(ingestion_service, template=False)
        run = make_workflow(ScriptedLLMService(["ok"])).run(
            "chat-1", DocumentRequest(title="Notes", require_template=False)
        )

        [d async for d in run]

        assert run.decision.ready is True
        assert run.session.request.template_content is None

    @pytest.mark.asyncio
    async def test_missing_sources_blocks_with_template_present(self, make_workflow, ingestion_service):
        await _upload(ingestion_service, source=False)

        run = make_workflow(ScriptedLLMService(["x"])).run("chat-1", DocumentRequest(title="Q1 Report"))

        assert run.decision.missing == [Precondition.SOURCE_FILES]

    @pytest.mark.asyncio
    async def test_failed_synthesis_skips_completion(self, make_workflow, ingestion_service):
        await _upload(ingestion_service)
        llm = ScriptedLLMService([], error=LLMError("All models failed"))
        run = make_workflow(llm).run("chat-1", DocumentRequest(title="Q1 Report"))

        deltas = [d async for d in run]

        assert deltas[-1].type == DeltaType.ERROR
        assert DeltaType.WORKFLOW_COMPLETE not in [d.type for d in deltas]

    @pytest.mark.asyncio
    async def test_cancel_stops_the_session(self, make_workflow, ingestion_service):
        await _upload(ingestion_service)
        llm = ScriptedLLMService(["one ", "two "])
        run = make_workflow(llm).run("chat-1", DocumentRequest(title="Q1 Report"))

        seen = []
        async for delta in run:
            seen.append(delta)
            if delta.type == DeltaType.TEXT_DELTA:
                run.cancel()

        assert run.session.state == SessionState.CANCELLED
        assert DeltaType.WORKFLOW_COMPLETE not in [d.type for d in seen]
