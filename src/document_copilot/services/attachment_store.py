"""In-process registry of file attachments, keyed by scope."""

from typing import Dict, List, Optional

from document_copilot.models.attachment import FileAttachment, FileKind
from document_copilot.utils.logging import get_logger

logger = get_logger("attachment_store")


class AttachmentStore:
    """Ingestion metadata the workflow gate and synthesis driver read."""

    def __init__(self) -> None:
        self._by_scope: Dict[str, Dict[str, FileAttachment]] = {}

    def add(self, attachment: FileAttachment) -> FileAttachment:
        self._by_scope.setdefault(attachment.scope_id, {})[attachment.source_id] = attachment
        logger.debug(
            f"Registered attachment: scope={attachment.scope_id}, source={attachment.source_id}, "
            f"kind={attachment.kind.value}"
        )
        return attachment

    def get(self, scope_id: str, source_id: str) -> Optional[FileAttachment]:
        return self._by_scope.get(scope_id, {}).get(source_id)

    def list(self, scope_id: str, kind: Optional[FileKind] = None) -> List[FileAttachment]:
        """Attachments under a scope, newest first."""
        attachments = [
            a for a in self._by_scope.get(scope_id, {}).values() if kind is None or a.kind == kind
        ]
        return sorted(attachments, key=lambda a: a.created_at, reverse=True)

    def count(self, scope_id: str, kind: Optional[FileKind] = None) -> int:
        return len(self.list(scope_id, kind))

    def latest_template(self, scope_id: str) -> Optional[FileAttachment]:
        templates = self.list(scope_id, FileKind.TEMPLATE)
        return templates[0] if templates else None

    def remove(self, scope_id: str, source_id: str) -> Optional[FileAttachment]:
        return self._by_scope.get(scope_id, {}).pop(source_id, None)

    def clear_scope(self, scope_id: str) -> int:
        return len(self._by_scope.pop(scope_id, {}))
