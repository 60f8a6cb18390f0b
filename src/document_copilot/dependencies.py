"""FastAPI dependencies for the Document Copilot service.

Services are process-wide singletons built lazily from settings. Tests swap
them through ``app.dependency_overrides`` or `reset_dependencies()`.
"""

from typing import Optional

from document_copilot.config import VectorStoreBackend, get_settings
from document_copilot.services.attachment_store import AttachmentStore
from document_copilot.services.chunking_service import ChunkingService
from document_copilot.services.document_workflow_service import DocumentWorkflowService
from document_copilot.services.embedding_service import EmbeddingService
from document_copilot.services.ingestion_service import IngestionService
from document_copilot.services.llm_service import get_llm_service
from document_copilot.services.prompt_builder import PromptBuilder
from document_copilot.services.qdrant_vector_store import QdrantVectorStore
from document_copilot.services.retrieval_service import RetrievalService
from document_copilot.services.synthesis_service import SynthesisService
from document_copilot.services.template_analyzer import TemplateAnalyzer
from document_copilot.services.vector_store import InMemoryVectorStore, VectorStore
from document_copilot.services.workflow_gate import WorkflowGate
from document_copilot.utils.logging import get_logger

logger = get_logger("dependencies")

_attachment_store: Optional[AttachmentStore] = None
_vector_store: Optional[VectorStore] = None
_chunking_service: Optional[ChunkingService] = None
_embedding_service: Optional[EmbeddingService] = None
_template_analyzer: Optional[TemplateAnalyzer] = None


def get_attachment_store() -> AttachmentStore:
    global _attachment_store
    if _attachment_store is None:
        _attachment_store = AttachmentStore()
    return _attachment_store


def get_vector_store() -> VectorStore:
    """Get the vector store selected by VECTOR_STORE_BACKEND."""
    global _vector_store
    if _vector_store is None:
        settings = get_settings()
        dimension = settings.embedding.embedding_dimension
        if settings.vector_store.backend == VectorStoreBackend.QDRANT:
            _vector_store = QdrantVectorStore(dimension=dimension)
        else:
            _vector_store = InMemoryVectorStore(dimension=dimension)
        logger.info(f"Vector store initialized: backend={settings.vector_store.backend.value}")
    return _vector_store


def get_chunking_service() -> ChunkingService:
    global _chunking_service
    if _chunking_service is None:
        _chunking_service = ChunkingService()
    return _chunking_service


def get_embedding_service() -> EmbeddingService:
    global _embedding_service
    if _embedding_service is None:
        _embedding_service = EmbeddingService()
    return _embedding_service


def get_template_analyzer() -> TemplateAnalyzer:
    global _template_analyzer
    if _template_analyzer is None:
        _template_analyzer = TemplateAnalyzer()
    return _template_analyzer


def get_ingestion_service() -> IngestionService:
    return IngestionService(
        chunking_service=get_chunking_service(),
        embedding_service=get_embedding_service(),
        vector_store=get_vector_store(),
        attachment_store=get_attachment_store(),
    )


def get_retrieval_service() -> RetrievalService:
    return RetrievalService(
        embedding_service=get_embedding_service(),
        vector_store=get_vector_store(),
    )


def get_workflow_gate() -> WorkflowGate:
    return WorkflowGate(get_attachment_store())


def get_synthesis_service() -> SynthesisService:
    return SynthesisService(
        retrieval_service=get_retrieval_service(),
        llm_service=get_llm_service(),
        prompt_builder=PromptBuilder(get_template_analyzer()),
    )


def get_document_workflow_service() -> DocumentWorkflowService:
    return DocumentWorkflowService(
        workflow_gate=get_workflow_gate(),
        attachment_store=get_attachment_store(),
        synthesis_service=get_synthesis_service(),
    )


def reset_dependencies() -> None:
    """Drop every cached singleton (used by tests)."""
    global _attachment_store, _vector_store, _chunking_service, _embedding_service, _template_analyzer
    _attachment_store = None
    _vector_store = None
    _chunking_service = None
    _embedding_service = None
    _template_analyzer = None
