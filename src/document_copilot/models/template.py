"""Template outline models."""

from typing import List, Optional

from pydantic import BaseModel, Field


class TemplateSection(BaseModel):
    """A heading found in a template, with the requirements listed beneath it."""

    title: str
    level: int = Field(..., ge=1, description="Heading depth (1 = top level)")
    requirements: List[str] = Field(default_factory=list)
    content: str = Field("", description="Body text between this heading and the next")
    parent_section: Optional[str] = Field(None, description="Title of the enclosing section")
