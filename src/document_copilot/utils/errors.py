"""Custom exception classes for the Document Copilot service."""

from typing import Any, Dict, List, Optional


class CopilotException(Exception):
    """Base exception for all Document Copilot errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "status_code": self.status_code,
                "details": self.details,
            }
        }


class EmptyContentError(CopilotException):
    """Exception raised when ingested or embedded text is empty after sanitisation."""

    def __init__(
        self,
        message: str = "Content is empty after sanitization",
        source_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if source_id:
            error_details["source_id"] = source_id
        error_details.setdefault(
            "guidance",
            "The uploaded file contains no extractable text. Upload a text, DOCX or PDF "
            "file with readable content and try again.",
        )
        super().__init__(
            message=message,
            status_code=422,
            code="EMPTY_CONTENT",
            details=error_details,
        )


class ChunkingError(CopilotException):
    """Exception raised for text chunking errors."""

    def __init__(
        self,
        message: str = "Text chunking failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="CHUNKING_ERROR",
            details=details,
        )


class EmbeddingProviderError(CopilotException):
    """Exception raised when the embedding provider fails (rate limit, timeout, bad response)."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if model:
            error_details["model"] = model
        super().__init__(
            message=message,
            status_code=502,
            code="EMBEDDING_PROVIDER_ERROR",
            details=error_details,
        )


class DimensionMismatchError(CopilotException):
    """Exception raised when a vector's length differs from the store dimension."""

    def __init__(
        self,
        expected: int,
        actual: int,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        error_details["expected_dimension"] = expected
        error_details["actual_dimension"] = actual
        super().__init__(
            message=f"Embedding dimension mismatch: expected {expected}, got {actual}",
            status_code=500,
            code="DIMENSION_MISMATCH",
            details=error_details,
        )


class VectorStoreError(CopilotException):
    """Exception raised for vector store backend failures."""

    def __init__(
        self,
        message: str = "Vector store operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=502,
            code="VECTOR_STORE_ERROR",
            details=details,
        )


class LLMError(CopilotException):
    """Exception raised for LLM-related errors."""

    def __init__(
        self,
        message: str = "LLM operation failed",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if model:
            error_details["model"] = model
        super().__init__(
            message=message,
            status_code=502,
            code="LLM_ERROR",
            details=error_details,
        )


class WorkflowBlockedError(CopilotException):
    """Exception raised when synthesis is requested but its preconditions are not met."""

    def __init__(
        self,
        missing: List[str],
        guidance: str,
        next_action: Optional[str] = None,
    ):
        labels = " and ".join(m.replace("_", " ") for m in missing)
        super().__init__(
            message=f"Document generation is blocked: missing {labels}",
            status_code=409,
            code="WORKFLOW_BLOCKED",
            details={
                "missing": missing,
                "guidance": guidance,
                "next_action": next_action,
            },
        )


class ValidationError(CopilotException):
    """Exception raised for validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if errors:
            error_details["validation_errors"] = errors
        super().__init__(
            message=message,
            status_code=422,
            code="VALIDATION_ERROR",
            details=error_details,
        )


class NotFoundError(CopilotException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        if resource_id:
            message += f" with id: {resource_id}"
        error_details = details or {}
        error_details["resource"] = resource
        if resource_id:
            error_details["resource_id"] = resource_id
        super().__init__(
            message=message,
            status_code=404,
            code="NOT_FOUND",
            details=error_details,
        )
