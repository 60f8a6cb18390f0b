"""API v1 router aggregation."""

from fastapi import APIRouter

from document_copilot.api.v1 import documents, files, health, retrieval, templates, workflow

# Create v1 API router with version prefix
router = APIRouter(
    prefix="/api/v1",
    tags=["v1"],
    responses={
        404: {"description": "Not found"},
        422: {"description": "Validation error"},
        500: {"description": "Internal server error"},
    },
)

# Include all v1 API sub-routers
router.include_router(health.router)
router.include_router(files.router)
router.include_router(retrieval.router)
router.include_router(workflow.router)
router.include_router(documents.router)
router.include_router(templates.router)


@router.get(
    "/",
    summary="API Information",
    description="Get API version and status information",
    tags=["v1"],
)
async def api_info():
    """
    Get API v1 information.

    Returns:
        dict: API version and status information
    """
    return {
        "version": "v1",
        "status": "active",
        "service": "document-copilot",
        "endpoints": {
            "health": "/api/v1/health",
            "ready": "/api/v1/ready",
            "files": "/api/v1/scopes/{scope_id}/files",
            "search": "/api/v1/scopes/{scope_id}/search",
            "workflow": "/api/v1/scopes/{scope_id}/workflow",
            "documents": "/api/v1/scopes/{scope_id}/documents",
            "sections": "/api/v1/scopes/{scope_id}/sections",
            "templates": "/api/v1/templates/analyze",
        },
    }
