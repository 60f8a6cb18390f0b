"""Workflow gate models."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Precondition(str, Enum):
    """A precondition that can block document synthesis."""

    TEMPLATE = "template"
    SOURCE_FILES = "source_files"


class NextAction(str, Enum):
    """Upload the user should perform to unblock the workflow."""

    UPLOAD_TEMPLATE = "upload_template"
    UPLOAD_SOURCE_FILES = "upload_source_files"


class WorkflowDecision(BaseModel):
    """Outcome of a workflow gate evaluation. Derived on demand, never persisted."""

    ready: bool
    missing: List[Precondition] = Field(default_factory=list)
    guidance: str = ""
    next_action: Optional[NextAction] = None
