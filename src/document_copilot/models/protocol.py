"""Streaming protocol deltas exchanged between the synthesis driver and clients."""

import json
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError


class DeltaType(str, Enum):
    """Closed set of delta types understood by the protocol."""

    ID = "id"
    TITLE = "title"
    KIND = "kind"
    CLEAR = "clear"
    TEXT_DELTA = "text-delta"
    FINISH = "finish"
    ERROR = "error"
    WORKFLOW_STEP = "workflow-step"
    WORKFLOW_GUIDANCE = "workflow-guidance"
    WORKFLOW_COMPLETE = "workflow-complete"
    SECTION_CONTENT = "section-content"


WORKFLOW_DELTA_TYPES = frozenset(
    [DeltaType.WORKFLOW_STEP, DeltaType.WORKFLOW_GUIDANCE, DeltaType.WORKFLOW_COMPLETE]
)


class ProtocolDelta(BaseModel):
    """One typed element of a synthesis stream.

    Serialised with camelCase keys (``messageId``, ``documentId``) to match the
    wire shape clients consume.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: DeltaType
    content: str = ""
    message_id: Optional[str] = Field(None, alias="messageId")
    document_id: Optional[str] = Field(None, alias="documentId")
    # set on section-content deltas: title of the template section being written
    section: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """Dump to the JSON-ready wire dict, omitting absent optional ids."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_sse(self) -> str:
        """Format as a single Server-Sent Events data frame."""
        return f"data: {json.dumps(self.to_wire())}\n\n"


def parse_delta(raw: Union[str, bytes, Dict[str, Any]]) -> Optional[ProtocolDelta]:
    """Parse a wire delta.

    Returns None when the payload carries an unknown ``type`` (or is not a
    delta at all) so consumers can skip it instead of failing the stream.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            return None
    if not isinstance(raw, dict):
        return None

    try:
        return ProtocolDelta.model_validate(raw)
    except PydanticValidationError:
        return None
