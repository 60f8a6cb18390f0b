"""Document Copilot - template-driven document generation with scoped RAG."""

__version__ = "0.1.0"
