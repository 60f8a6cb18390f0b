"""Pytest configuration and fixtures for document-copilot tests."""

import pytest

import document_copilot.config as config_module
import document_copilot.services.llm_service as llm_module
from document_copilot.config import (
    ChunkingSettings,
    EmbeddingSettings,
    LLMSettings,
    RetrievalSettings,
    Settings,
    VectorStoreSettings,
)
from document_copilot.dependencies import reset_dependencies
from document_copilot.services.attachment_store import AttachmentStore
from document_copilot.services.chunking_service import ChunkingService
from document_copilot.services.embedding_service import EmbeddingService
from document_copilot.services.ingestion_service import IngestionService
from document_copilot.services.prompt_builder import PromptBuilder
from document_copilot.services.retrieval_service import RetrievalService
from document_copilot.services.synthesis_service import SynthesisService
from document_copilot.services.vector_store import InMemoryVectorStore
from document_copilot.services.workflow_gate import WorkflowGate

from fakes import EMBEDDING_DIMENSION, FakeEmbeddingClient


@pytest.fixture(autouse=True)
def mock_settings(monkeypatch):
    """Install clean, deterministic settings for every test."""
    monkeypatch.setenv("OPENAI_API_KEY", "test-key")
    settings = Settings(
        environment="development",
        debug=False,
        log_level="INFO",
        embedding=EmbeddingSettings(
            embedding_provider="openai",
            openai_api_key="test-key",
            embedding_dimension=EMBEDDING_DIMENSION,
            embedding_batch_size=100,
            embedding_max_retries=1,
        ),
        chunking=ChunkingSettings(chunk_size=1000, chunk_overlap=200, chunk_length_unit="characters"),
        retrieval=RetrievalSettings(top_k=10, min_similarity=0.3),
        vector_store=VectorStoreSettings(backend="memory"),
        llm=LLMSettings(
            default_model_name="openai/gpt-4o-mini",
            fallback_model_name="anthropic/claude-3-haiku",
            enable_fallbacks=True,
            openai_api_key="test-key",
            anthropic_api_key=None,
            azure_api_key=None,
            azure_api_base=None,
            llm_max_retries=1,
        ),
    )
    monkeypatch.setattr(config_module, "_settings", settings)
    monkeypatch.setattr(llm_module, "_llm_service", None)
    reset_dependencies()
    yield settings
    reset_dependencies()


@pytest.fixture
def embedding_client():
    return FakeEmbeddingClient()


@pytest.fixture
def embedding_service(mock_settings, embedding_client):
    return EmbeddingService(client=embedding_client, settings=mock_settings)


@pytest.fixture
def vector_store():
    return InMemoryVectorStore(dimension=EMBEDDING_DIMENSION)


@pytest.fixture
def attachment_store():
    return AttachmentStore()


@pytest.fixture
def chunking_service(mock_settings):
    return ChunkingService(settings=mock_settings)


@pytest.fixture
def ingestion_service(mock_settings, chunking_service, embedding_service, vector_store, attachment_store):
    return IngestionService(
        chunking_service=chunking_service,
        embedding_service=embedding_service,
        vector_store=vector_store,
        attachment_store=attachment_store,
        settings=mock_settings,
    )


@pytest.fixture
def retrieval_service(mock_settings, embedding_service, vector_store):
    return RetrievalService(embedding_service=embedding_service, vector_store=vector_store, settings=mock_settings)


@pytest.fixture
def workflow_gate(attachment_store):
    return WorkflowGate(attachment_store)


@pytest.fixture
def make_synthesis_service(retrieval_service):
    """Build a SynthesisService around a scripted LLM."""

    def _make(llm):
        return SynthesisService(
            retrieval_service=retrieval_service,
            llm_service=llm,
            prompt_builder=PromptBuilder(),
        )

    return _make
