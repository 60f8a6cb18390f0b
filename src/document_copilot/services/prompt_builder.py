"""Prompt construction for document synthesis."""

from typing import Dict, List, Optional

from document_copilot.models.artifact import ArtifactKind
from document_copilot.models.embedding import SearchResult
from document_copilot.models.synthesis import SynthesisRequest
from document_copilot.models.template import TemplateSection
from document_copilot.services.template_analyzer import TemplateAnalyzer
from document_copilot.utils.errors import ValidationError

TEXT_PROMPT = (
    "Write about the given topic. Markdown is supported. "
    "Use headings wherever appropriate and create a well-structured document."
)

DOCUMENT_GENERATION_PROMPT = """You are a document writer that fills in templates using source material.

Follow the template exactly:
1. Keep every section of the template, in order, with the same headings
2. Satisfy the requirements listed under each section
3. Take facts, figures and names only from the source excerpts provided
4. When the excerpts do not cover a section, say that the information was not found in the source files
5. Use Markdown for headings, lists and tables

Do not add commentary before or after the document."""

CODE_PROMPT = """You are a Python code generator that creates self-contained, executable code snippets. When writing code:

1. Each snippet should be complete and runnable on its own
2. Prefer using print() statements to display outputs
3. Include helpful comments explaining the code
4. Keep snippets concise (generally under 15 lines)
5. Avoid external dependencies - use Python standard library
6. Handle potential errors gracefully
7. Return meaningful output that demonstrates functionality
8. Don't use input() or interactive functions
9. Don't access files or network resources
10. Don't use infinite loops

When working with template structures:
1. Follow template section requirements
2. Include required function signatures
3. Implement specified error handling
4. Add documentation as per template"""

SHEET_PROMPT = """You are a spreadsheet creation assistant. Create spreadsheets in CSV format based on:
1. Template requirements if provided
2. Source data from reference files
3. User-specified structure and format
4. Meaningful column headers and data organization"""

SECTION_PROMPT = """You are a professional writer creating content for a document section.
Write content that addresses all requirements and uses the provided source materials.
Format output in Markdown."""

SUPPORTED_KINDS = (ArtifactKind.TEXT, ArtifactKind.CODE, ArtifactKind.SHEET)


class PromptBuilder:
    """Build the provider messages for a synthesis request."""

    def __init__(self, template_analyzer: Optional[TemplateAnalyzer] = None) -> None:
        self._analyzer = template_analyzer or TemplateAnalyzer()

    def system_prompt(self, kind: ArtifactKind, has_template: bool = False) -> str:
        """
        Select the system prompt for a document kind.

        Raises:
            ValidationError: If no prompt exists for the kind
        """
        if kind == ArtifactKind.TEXT:
            return DOCUMENT_GENERATION_PROMPT if has_template else TEXT_PROMPT
        if kind == ArtifactKind.CODE:
            return CODE_PROMPT
        if kind == ArtifactKind.SHEET:
            return SHEET_PROMPT
        raise ValidationError(
            f"No document handler found for kind: {kind.value}",
            details={"kind": kind.value, "supported": [k.value for k in SUPPORTED_KINDS]},
        )

    def user_prompt(self, request: SynthesisRequest, snippets: List[SearchResult]) -> str:
        parts = [f"Title: {request.title}"]
        if request.description:
            parts.append(f"Description: {request.description}")

        if request.template_content:
            parts.append(f"Template:\n{request.template_content}")
            sections = self._analyzer.analyze(request.template_content)
            if sections:
                outline = []
                for section in sections:
                    indent = "  " * (section.level - 1)
                    line = f"{indent}- {section.title}"
                    if section.requirements:
                        line += f" (requirements: {'; '.join(section.requirements)})"
                    outline.append(line)
                parts.append("Template outline:\n" + "\n".join(outline))

        if snippets:
            excerpts = [
                f"[{i}] (source: {snippet.source_id}, similarity: {snippet.similarity:.2f})\n{snippet.content}"
                for i, snippet in enumerate(snippets, start=1)
            ]
            parts.append("Source excerpts to reference:\n" + "\n\n".join(excerpts))

        return "\n\n".join(parts)

    def build_messages(
        self, request: SynthesisRequest, snippets: List[SearchResult]
    ) -> List[Dict[str, str]]:
        return [
            {
                "role": "system",
                "content": self.system_prompt(request.kind, has_template=bool(request.template_content)),
            },
            {"role": "user", "content": self.user_prompt(request, snippets)},
        ]

    def section_system_prompt(self, section: TemplateSection) -> str:
        if section.parent_section:
            placement = f'is part of "{section.parent_section}"'
        else:
            placement = "is a main section"
        return f'{SECTION_PROMPT}\nContext: This section "{section.title}" {placement}'

    def section_user_prompt(self, section: TemplateSection, snippets: List[SearchResult]) -> str:
        requirements = "\n".join(f"- {r}" for r in section.requirements) or "- Cover the section topic"
        materials = "\n\n".join(snippet.content for snippet in snippets)
        materials = materials or "No source material matched this section."
        return f"Requirements:\n{requirements}\n\nSource Materials:\n{materials}"

    def build_section_messages(
        self, section: TemplateSection, snippets: List[SearchResult]
    ) -> List[Dict[str, str]]:
        """Messages for writing one template section."""
        return [
            {"role": "system", "content": self.section_system_prompt(section)},
            {"role": "user", "content": self.section_user_prompt(section, snippets)},
        ]
