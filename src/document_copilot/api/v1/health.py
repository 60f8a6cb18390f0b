"""Health check endpoints."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from document_copilot.config import get_settings
from document_copilot.dependencies import get_vector_store
from document_copilot.utils.logging import get_logger

logger = get_logger("health")

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    """
    Health check endpoint.

    Returns basic service health status. This endpoint does not check
    external dependencies and will always return healthy if the service is running.
    """
    settings = get_settings()
    logger.debug("Health check requested")
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
    }


@router.get("/ready", status_code=status.HTTP_200_OK)
async def readiness_check():
    """
    Readiness check endpoint.

    Checks:
    - Embeddings (provider credentials present)
    - LLM (at least one provider key present)
    - Vector store (Qdrant reachable when it is the selected backend)

    Returns 503 if embeddings or the vector store are unavailable.
    """
    settings = get_settings()
    logger.debug("Readiness check requested")

    checks = {
        "embeddings": settings.embedding.is_configured,
        "llm": settings.llm.has_openai or settings.llm.has_anthropic or settings.llm.has_azure_openai,
        "vector_store": False,
    }

    try:
        store = get_vector_store()
        await store.count()
        checks["vector_store"] = True
        logger.debug(f"Vector store check passed (backend={settings.vector_store.backend.value})")
    except Exception as e:
        logger.warning(f"Vector store check failed: {e}")
        checks["vector_store"] = False

    if not checks["llm"]:
        logger.warning("LLM configuration check failed: no provider API key set")

    # Embeddings and the vector store are critical; the LLM is only needed for synthesis
    critical_ready = checks["embeddings"] and checks["vector_store"]
    body = {
        "status": "ready" if critical_ready else "not_ready",
        "app_name": settings.app_name,
        "environment": settings.environment.value,
        "vector_store_backend": settings.vector_store.backend.value,
        "checks": checks,
    }
    if not critical_ready:
        logger.warning(f"Readiness check failed (critical): {checks}")
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=body)
    return body
