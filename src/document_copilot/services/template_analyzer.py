"""Extract a section outline from template text."""

import re
from typing import List, Optional, Tuple

from document_copilot.models.template import TemplateSection
from document_copilot.utils.logging import get_logger

logger = get_logger("template_analyzer")

_MARKDOWN_HEADING = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
# "1 Scope", "2.3 Reporting", "4.1.2. Definitions"
_NUMBERED_HEADING = re.compile(r"^(\d+(?:\.\d+)*)\.?\s+([A-Z].*)$")
_BULLET = re.compile(r"^\s*(?:[-*•]|\(?[a-z]\)|\d+[.)])\s+(.*\S)\s*$")
_REQUIREMENT_WORDS = re.compile(r"\b(must|shall|should|required|include|provide)\b", re.IGNORECASE)

_MAX_NUMBERED_HEADING_LENGTH = 100


class TemplateAnalyzer:
    """
    Find Markdown (``#``) and numbered (``1.2 Title``) headings in a template
    and arrange them into a hierarchy.

    Each section lists as requirements the bullet items and the sentences
    using requirement wording (must, shall, should, ...) found in its body.
    """

    def analyze(self, template_text: str) -> List[TemplateSection]:
        if not template_text or not template_text.strip():
            return []

        sections: List[TemplateSection] = []
        current: Optional[Tuple[str, int]] = None
        body: List[str] = []

        for line in template_text.splitlines():
            heading = self._parse_heading(line)
            if heading is None:
                if current is not None:
                    body.append(line)
                continue
            if current is not None:
                sections.append(self._make_section(current, body))
            current, body = heading, []

        if current is not None:
            sections.append(self._make_section(current, body))

        hierarchy = build_section_hierarchy(sections)
        logger.info(f"Template analyzed with {len(hierarchy)} sections")
        return hierarchy

    def _parse_heading(self, line: str) -> Optional[Tuple[str, int]]:
        stripped = line.strip()
        match = _MARKDOWN_HEADING.match(stripped)
        if match:
            return match.group(2).strip(), len(match.group(1))

        match = _NUMBERED_HEADING.match(stripped)
        if match and len(stripped) <= _MAX_NUMBERED_HEADING_LENGTH and not stripped.endswith((".", ":", ";", ",")):
            return stripped, match.group(1).count(".") + 1
        return None

    def _make_section(self, heading: Tuple[str, int], body: List[str]) -> TemplateSection:
        title, level = heading
        requirements: List[str] = []
        for line in body:
            bullet = _BULLET.match(line)
            if bullet:
                requirements.append(bullet.group(1))
            elif line.strip() and _REQUIREMENT_WORDS.search(line):
                requirements.append(line.strip())
        return TemplateSection(
            title=title,
            level=level,
            requirements=requirements,
            content="\n".join(body).strip(),
        )


def build_section_hierarchy(sections: List[TemplateSection]) -> List[TemplateSection]:
    """Set each section's parent to the nearest preceding section with a lower level."""
    hierarchy: List[TemplateSection] = []
    stack: List[TemplateSection] = []

    for section in sections:
        while stack and stack[-1].level >= section.level:
            stack.pop()
        if stack:
            section = section.model_copy(update={"parent_section": stack[-1].title})
        stack.append(section)
        hierarchy.append(section)

    return hierarchy
