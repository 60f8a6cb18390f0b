"""Template analysis endpoint."""

from fastapi import APIRouter, Depends

from document_copilot.dependencies import get_template_analyzer
from document_copilot.models.api import TemplateAnalysisRequest, TemplateAnalysisResponse
from document_copilot.services.template_analyzer import TemplateAnalyzer

router = APIRouter(prefix="/templates", tags=["templates"])


@router.post("/analyze", response_model=TemplateAnalysisResponse)
async def analyze_template(
    request: TemplateAnalysisRequest,
    analyzer: TemplateAnalyzer = Depends(get_template_analyzer),
):
    """Extract the section outline of a template."""
    sections = analyzer.analyze(request.content)
    return TemplateAnalysisResponse(
        sections=sections,
        message=f"Template analyzed with {len(sections)} sections",
    )
