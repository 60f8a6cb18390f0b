"""Tests for the HTTP API."""

import json

import pytest
from fastapi.testclient import TestClient

import document_copilot.dependencies as dependencies
import document_copilot.services.llm_service as llm_module
from document_copilot.main import app
from document_copilot.services.embedding_service import EmbeddingService

from fakes import ScriptedLLMService

TEMPLATE = "# Summary\n- Must state revenue growth\n# Staffing\n"
SOURCE = "Revenue grew 12% in Q1. Staff count is 40."


@pytest.fixture
def client(monkeypatch, mock_settings, embedding_client):
    monkeypatch.setattr(
        dependencies,
        "_embedding_service",
        EmbeddingService(client=embedding_client, settings=mock_settings),
    )
    return TestClient(app)


def _upload(client, scope_id, content, kind="source", file_name="file.txt"):
    return client.post(
        f"/api/v1/scopes/{scope_id}/files",
        json={"file_name": file_name, "kind": kind, "content": content, "content_type": "text/plain"},
    )


def _sse_payloads(body):
    return [frame[len("data: "):] for frame in body.split("\n\n") if frame.startswith("data: ")]


class TestHealth:
    """Test health endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Request-ID" in response.headers
        assert "X-Process-Time" in response.headers

    def test_request_id_is_echoed(self, client):
        response = client.get("/api/v1/health", headers={"X-Request-ID": "req-abc"})
        assert response.headers["X-Request-ID"] == "req-abc"

    def test_ready(self, client):
        response = client.get("/api/v1/ready")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["vector_store_backend"] == "memory"
        assert body["checks"] == {"embeddings": True, "llm": True, "vector_store": True}

    def test_not_ready_without_embedding_credentials(self, client, mock_settings):
        mock_settings.embedding.openai_api_key = None

        response = client.get("/ready")

        assert response.status_code == 503
        assert response.json()["checks"]["embeddings"] is False

    def test_api_info(self, client):
        response = client.get("/api/v1/")
        assert response.status_code == 200
        assert response.json()["endpoints"]["documents"] == "/api/v1/scopes/{scope_id}/documents"


class TestFiles:
    """Test file ingestion endpoints."""

    def test_upload_and_list(self, client):
        response = _upload(client, "chat-1", SOURCE, file_name="q1.txt")

        assert response.status_code == 201
        body = response.json()
        assert body["indexed"] is True
        assert body["chunk_count"] == 1
        assert body["attachment_id"]

        listing = client.get("/api/v1/scopes/chat-1/files").json()
        assert listing["scope_id"] == "chat-1"
        assert [f["file_name"] for f in listing["files"]] == ["q1.txt"]
        assert listing["files"][0]["source_id"] == body["source_id"]

    def test_empty_upload_is_rejected(self, client):
        response = _upload(client, "chat-1", "  \x00  ")

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMPTY_CONTENT"
        assert client.get("/api/v1/scopes/chat-1/files").json()["files"] == []

    def test_oversized_upload_is_rejected(self, client):
        response = client.post(
            "/api/v1/scopes/chat-1/files",
            json={"file_name": "big.txt", "content": "x", "size": 20 * 1024 * 1024},
        )

        assert response.status_code == 422
        assert response.json()["error"]["message"] == "File size should be less than 10MB"

    def test_delete_file(self, client):
        source_id = _upload(client, "chat-1", SOURCE).json()["source_id"]

        response = client.delete(f"/api/v1/scopes/chat-1/files/{source_id}")
        assert response.status_code == 200
        assert response.json()["deleted_records"] == 1

        missing = client.delete(f"/api/v1/scopes/chat-1/files/{source_id}")
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "NOT_FOUND"


class TestSearch:
    """Test scoped search endpoint."""

    def test_search_returns_relevant_chunk(self, client):
        _upload(client, "chat-1", SOURCE)

        response = client.post("/api/v1/scopes/chat-1/search", json={"query": "What was revenue growth?"})

        assert response.status_code == 200
        results = response.json()["results"]
        assert len(results) == 1
        assert results[0]["similarity"] > 0.3
        assert "Revenue grew 12%" in results[0]["content"]

    def test_search_empty_scope(self, client):
        response = client.post("/api/v1/scopes/empty/search", json={"query": "anything"})

        assert response.status_code == 200
        assert response.json() == {"scope_id": "empty", "results": []}

    def test_search_validation(self, client):
        response = client.post("/api/v1/scopes/chat-1/search", json={"query": "", "k": 0})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestWorkflow:
    """Test workflow gate endpoint."""

    def test_empty_scope_is_blocked(self, client):
        response = client.post("/api/v1/scopes/chat-2/workflow", json={})

        assert response.status_code == 200
        body = response.json()
        assert body["ready"] is False
        assert body["missing"] == ["template", "source_files"]
        assert body["next_action"] == "upload_template"

    def test_ready_after_uploads(self, client):
        _upload(client, "chat-1", TEMPLATE, kind="template")
        _upload(client, "chat-1", SOURCE)

        response = client.post("/api/v1/scopes/chat-1/workflow", json={})

        assert response.json() == {"ready": True, "missing": [], "guidance": "", "next_action": None}


class TestDocuments:
    """Test document generation endpoint."""

    def test_blocked_request_returns_conflict(self, client):
        response = client.post("/api/v1/scopes/chat-1/documents", json={"title": "Q1 Report"})

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "WORKFLOW_BLOCKED"
        assert error["details"]["missing"] == ["template", "source_files"]
        assert error["details"]["guidance"].startswith("No template found.")

    def test_streams_document_deltas(self, client, monkeypatch):
        llm = ScriptedLLMService(["## Summary\n", "Revenue grew 12%."])
        monkeypatch.setattr(llm_module, "_llm_service", llm)
        _upload(client, "chat-1", TEMPLATE, kind="template")
        _upload(client, "chat-1", SOURCE)

        response = client.post(
            "/api/v1/scopes/chat-1/documents",
            json={"title": "Q1 Report", "description": "revenue growth", "document_id": "doc-1", "message_id": "m1"},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        payloads = _sse_payloads(response.text)
        assert payloads[-1] == "[DONE]"
        deltas = [json.loads(p) for p in payloads[:-1]]
        assert [d["type"] for d in deltas] == [
            "workflow-step",
            "workflow-step",
            "workflow-step",
            "id",
            "kind",
            "title",
            "clear",
            "text-delta",
            "text-delta",
            "finish",
            "workflow-complete",
        ]
        assert deltas[3] == {"type": "id", "content": "doc-1", "messageId": "m1", "documentId": "doc-1"}
        assert "".join(d["content"] for d in deltas if d["type"] == "text-delta") == "## Summary\nRevenue grew 12%."

    def test_provider_failure_is_reported_in_stream(self, client, monkeypatch):
        monkeypatch.setattr(llm_module, "_llm_service", ScriptedLLMService([], error=RuntimeError("boom")))
        _upload(client, "chat-1", SOURCE)

        response = client.post(
            "/api/v1/scopes/chat-1/documents",
            json={"title": "Notes", "require_template": False},
        )

        deltas = [json.loads(p) for p in _sse_payloads(response.text)[:-1]]
        assert deltas[-1] == {"type": "error", "content": "boom", "documentId": deltas[3]["content"]}


class TestSections:
    """Test section writing endpoint."""

    def test_streams_section_content(self, client, monkeypatch):
        llm = ScriptedLLMService(["Revenue ", "grew 12%."])
        monkeypatch.setattr(llm_module, "_llm_service", llm)
        _upload(client, "chat-1", SOURCE)

        response = client.post(
            "/api/v1/scopes/chat-1/sections",
            json={"title": "Summary", "requirements": ["Must state revenue growth"], "document_id": "doc-1"},
        )

        assert response.status_code == 200
        payloads = _sse_payloads(response.text)
        assert payloads[-1] == "[DONE]"
        deltas = [json.loads(p) for p in payloads[:-1]]
        assert deltas == [
            {"type": "section-content", "content": "Revenue ", "documentId": "doc-1", "section": "Summary"},
            {"type": "section-content", "content": "grew 12%.", "documentId": "doc-1", "section": "Summary"},
        ]
        assert "is a main section" in llm.calls[0][0]["content"]

    def test_title_is_required(self, client):
        response = client.post("/api/v1/scopes/chat-1/sections", json={"requirements": []})

        assert response.status_code == 422


class TestTemplates:
    """Test template analysis endpoint."""

    def test_analyze(self, client):
        response = client.post("/api/v1/templates/analyze", json={"content": TEMPLATE})

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Template analyzed with 2 sections"
        assert [s["title"] for s in body["sections"]] == ["Summary", "Staffing"]
        assert body["sections"][0]["requirements"] == ["Must state revenue growth"]
