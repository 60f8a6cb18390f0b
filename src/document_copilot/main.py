"""FastAPI application entry point.

This module creates and configures the FastAPI application instance with:
- Application metadata and OpenAPI documentation
- Middleware (CORS, RequestID, Timing)
- Exception handlers
- API routers (v1)
- Health check endpoints (/health, /ready)
- Startup/shutdown lifecycle management (vector store connectivity)
"""

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from document_copilot.config import VectorStoreBackend, get_settings
from document_copilot.dependencies import get_vector_store
from document_copilot.middleware import setup_middleware
from document_copilot.utils.errors import CopilotException
from document_copilot.utils.logging import get_logger, log_error, setup_logging

# Set up logging first
setup_logging()
logger = get_logger("main")

# Get settings
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan events.

    On startup the selected vector store is checked; with the Qdrant backend
    the check is retried because the database container may still be starting.
    """
    logger.info("Starting Document Copilot service...")
    try:
        backend = settings.vector_store.backend
        logger.info(f"Initializing vector store (backend={backend.value})...")
        store = get_vector_store()

        max_retries = 1
        if backend == VectorStoreBackend.QDRANT:
            max_retries = 10 if settings.is_development else 3
        retry_delay = 3  # seconds

        for attempt in range(max_retries):
            try:
                records = await store.count()
                logger.info(
                    f"Vector store ready on attempt {attempt + 1}: backend={backend.value}, records={records}"
                )
                app.state.vector_store = store
                break
            except Exception as e:
                if attempt < max_retries - 1:
                    logger.warning(
                        f"Vector store check {attempt + 1}/{max_retries} failed: {e}. "
                        f"Retrying in {retry_delay} seconds..."
                    )
                    await asyncio.sleep(retry_delay)
                    continue
                logger.error(f"Vector store unavailable after {max_retries} attempts: {e}", exc_info=True)
                if settings.is_production:
                    raise  # Fail fast in production
                logger.warning(
                    "Vector store check failed in development mode. "
                    "Service will continue but ingestion and retrieval will fail until it is reachable."
                )
                app.state.vector_store = None

        logger.info("Document Copilot service started successfully")
        yield

    except Exception as e:
        logger.error(f"Failed to start Document Copilot service: {e}", exc_info=True)
        raise
    finally:
        logger.info("Document Copilot service shut down")


# Create FastAPI application
app = FastAPI(
    title="Document Copilot Service",
    description="Template-driven document generation with scoped retrieval and streaming synthesis",
    version="0.1.0",
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

# Set up middleware
setup_middleware(app)


# Exception handlers
@app.exception_handler(CopilotException)
async def copilot_exception_handler(request: Request, exc: CopilotException):
    """Handle CopilotException."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.detail,
                "code": "HTTP_ERROR",
                "status_code": exc.status_code,
            }
        },
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "message": "Validation error",
                "code": "VALIDATION_ERROR",
                "status_code": 422,
                "details": jsonable_encoder(exc.errors()),
            }
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions."""
    log_error(exc, context={"path": request.url.path, "method": request.method})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "message": "Internal server error",
                "code": "INTERNAL_ERROR",
                "status_code": 500,
            }
        },
    )


# Include API routers
from document_copilot.api.v1.router import router as v1_router

app.include_router(v1_router)


# Include health check endpoints at root level (for Kubernetes/Docker health checks)
# These are also available at /api/v1/health and /api/v1/ready
@app.get("/health", tags=["health"], include_in_schema=False)
async def root_health_check():
    """Root-level health check endpoint (for Kubernetes/Docker)."""
    from document_copilot.api.v1.health import health_check
    return await health_check()


@app.get("/ready", tags=["health"], include_in_schema=False)
async def root_readiness_check():
    """Root-level readiness check endpoint (for Kubernetes/Docker)."""
    from document_copilot.api.v1.health import readiness_check
    return await readiness_check()


# Root endpoint
@app.get("/", tags=["root"])
async def root():
    """Root endpoint."""
    return {
        "service": "document-copilot",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment.value,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "document_copilot.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload and settings.is_development,
        log_level=settings.log_level.lower(),
    )
