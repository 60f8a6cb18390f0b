import json

import pytest

from document_copilot.models.artifact import INITIAL_ARTIFACT, Artifact, ArtifactKind, ArtifactStatus
from document_copilot.models.protocol import DeltaType, ProtocolDelta
from document_copilot.models.synthesis import SynthesisRequest
from document_copilot.services.artifact_state import ArtifactStateMachine, reduce_artifact

from fakes import ScriptedLLMService


def _delta(delta_type, content="", document_id="doc-1"):
    return ProtocolDelta(type=delta_type, content=content, document_id=document_id)


def _header(document_id="doc-1", title="Report"):
    return [
        _delta(DeltaType.ID, document_id, document_id),
        _delta(DeltaType.KIND, "text", document_id),
        _delta(DeltaType.TITLE, title, document_id),
        _delta(DeltaType.CLEAR, "", document_id),
    ]


class TestReduceArtifact:
    """Test the pure reducer."""

    def test_id_starts_a_visible_streaming_document(self):
        artifact = reduce_artifact(INITIAL_ARTIFACT, _delta(DeltaType.ID, "doc-1"))

        assert artifact.document_id == "doc-1"
        assert artifact.status == ArtifactStatus.STREAMING
        assert artifact.is_visible is True
        assert artifact.content == ""

    def test_text_deltas_append_and_finish_goes_idle(self):
        artifact = INITIAL_ARTIFACT
        for delta in _header() + [
            _delta(DeltaType.TEXT_DELTA, "Hello"),
            _delta(DeltaType.TEXT_DELTA, " world"),
            _delta(DeltaType.FINISH),
        ]:
            artifact = reduce_artifact(artifact, delta)

        assert artifact.content == "Hello world"
        assert artifact.title == "Report"
        assert artifact.status == ArtifactStatus.IDLE

    def test_clear_resets_content(self):
        artifact = Artifact(document_id="doc-1", content="old", status=ArtifactStatus.STREAMING)
        assert reduce_artifact(artifact, _delta(DeltaType.CLEAR)).content == ""

    def test_kind_delta_sets_kind_and_unknown_kind_is_ignored(self):
        artifact = Artifact(document_id="doc-1")
        artifact = reduce_artifact(artifact, _delta(DeltaType.KIND, "code"))
        assert artifact.kind == ArtifactKind.CODE

        assert reduce_artifact(artifact, _delta(DeltaType.KIND, "hologram")) == artifact

    def test_error_records_message_and_keeps_content(self):
        artifact = Artifact(document_id="doc-1", content="partial", status=ArtifactStatus.STREAMING)

        artifact = reduce_artifact(artifact, _delta(DeltaType.ERROR, "provider failed"))

        assert artifact.error == "provider failed"
        assert artifact.content == "partial"
        assert artifact.status == ArtifactStatus.IDLE

    def test_section_content_appends_to_open_document(self):
        artifact = INITIAL_ARTIFACT
        for delta in _header() + [
            _delta(DeltaType.TEXT_DELTA, "# Report\n"),
            ProtocolDelta(type=DeltaType.SECTION_CONTENT, content="Revenue grew.", section="Revenue"),
        ]:
            artifact = reduce_artifact(artifact, delta)

        assert artifact.content == "# Report\nRevenue grew."
        assert artifact.status == ArtifactStatus.STREAMING

    def test_deltas_for_another_document_are_ignored(self):
        artifact = Artifact(document_id="doc-2", content="current", status=ArtifactStatus.STREAMING)

        assert reduce_artifact(artifact, _delta(DeltaType.TEXT_DELTA, "stale", "doc-1")) == artifact

    def test_workflow_deltas_leave_artifact_unchanged(self):
        artifact = Artifact(document_id="doc-1", content="x")
        for delta_type in (DeltaType.WORKFLOW_STEP, DeltaType.WORKFLOW_GUIDANCE, DeltaType.WORKFLOW_COMPLETE):
            assert reduce_artifact(artifact, _delta(delta_type, "step")) == artifact

    def test_new_id_supersedes_previous_document(self):
        artifact = Artifact(document_id="doc-1", content="first", title="One", kind=ArtifactKind.SHEET)

        artifact = reduce_artifact(artifact, _delta(DeltaType.ID, "doc-2", "doc-2"))

        assert artifact.document_id == "doc-2"
        assert artifact.content == ""
        assert artifact.title == ""
        assert artifact.kind == ArtifactKind.SHEET


class TestArtifactStateMachine:
    """Test ArtifactStateMachine."""

    @pytest.mark.asyncio
    async def test_session_stream_builds_final_artifact(self, make_synthesis_service):
        llm = ScriptedLLMService(["Hello", " world"])
        session = make_synthesis_service(llm).start(
            SynthesisRequest(scope_id="chat-3", title="Greeting", document_id="doc-1")
        )
        machine = ArtifactStateMachine()

        async for delta in session:
            machine.apply(delta)

        assert machine.artifact.content == "Hello world"
        assert machine.artifact.status == ArtifactStatus.IDLE
        assert machine.artifact.title == "Greeting"
        assert machine.artifact.document_id == "doc-1"

    @pytest.mark.asyncio
    async def test_abort_mid_stream_keeps_partial_content(self, make_synthesis_service):
        llm = ScriptedLLMService(["Hello", " world", "!"])
        session = make_synthesis_service(llm).start(
            SynthesisRequest(scope_id="chat-4", title="Greeting", document_id="doc-1")
        )
        machine = ArtifactStateMachine()

        buffered = []
        async for delta in session:
            buffered.append(delta)
        for delta in buffered:
            machine.apply(delta)
            if delta.type == DeltaType.TEXT_DELTA:
                machine.abort()

        assert machine.aborted is True
        assert machine.artifact.content == "Hello"
        assert machine.artifact.status == ArtifactStatus.IDLE

    def test_late_finish_after_abort_is_ignored(self):
        machine = ArtifactStateMachine()
        for delta in _header() + [_delta(DeltaType.TEXT_DELTA, "partial")]:
            machine.apply(delta)

        frozen = machine.abort()
        machine.apply(_delta(DeltaType.TEXT_DELTA, " more"))
        machine.apply(_delta(DeltaType.ERROR, "late"))
        machine.apply(_delta(DeltaType.FINISH))

        assert machine.artifact == frozen
        assert machine.artifact.content == "partial"

    def test_new_document_resumes_after_abort(self):
        machine = ArtifactStateMachine()
        machine.apply(_delta(DeltaType.ID, "doc-1"))
        machine.abort()

        machine.apply(_delta(DeltaType.ID, "doc-2", "doc-2"))
        machine.apply(_delta(DeltaType.TEXT_DELTA, "fresh", "doc-2"))

        assert machine.aborted is False
        assert machine.artifact.content == "fresh"

    def test_wire_deltas_are_accepted_and_unknown_types_skipped(self):
        machine = ArtifactStateMachine()
        machine.apply({"type": "id", "content": "doc-1", "documentId": "doc-1"})
        machine.apply(json.dumps({"type": "text-delta", "content": "Hi", "documentId": "doc-1"}))
        machine.apply({"type": "suggestion-delta", "content": "ignored"})
        machine.apply("not json")
        machine.apply(b'{"type": "finish", "documentId": "doc-1"}')

        assert machine.artifact.content == "Hi"
        assert machine.artifact.status == ArtifactStatus.IDLE

    def test_replay_rebuilds_from_initial_state(self):
        machine = ArtifactStateMachine()
        machine.apply(_delta(DeltaType.ID, "old", "old"))
        machine.apply(_delta(DeltaType.TEXT_DELTA, "stale", "old"))

        deltas = _header() + [_delta(DeltaType.TEXT_DELTA, "Hello"), _delta(DeltaType.FINISH)]
        artifact = machine.replay(deltas)

        assert artifact.document_id == "doc-1"
        assert artifact.content == "Hello"
        assert artifact.status == ArtifactStatus.IDLE
