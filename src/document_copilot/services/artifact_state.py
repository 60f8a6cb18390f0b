"""Client-side artifact state machine driven by protocol deltas."""

from typing import Any, Dict, Iterable, Optional, Union

from document_copilot.models.artifact import INITIAL_ARTIFACT, Artifact, ArtifactKind, ArtifactStatus
from document_copilot.models.protocol import DeltaType, ProtocolDelta, parse_delta
from document_copilot.utils.logging import get_logger

logger = get_logger("artifact_state")

RawDelta = Union[ProtocolDelta, Dict[str, Any], str, bytes]


def reduce_artifact(artifact: Artifact, delta: ProtocolDelta) -> Artifact:
    """
    Apply one delta to an artifact and return the new artifact.

    An ``id`` delta starts a new document and supersedes the current one.
    Section content is appended to the open document like text deltas.
    Deltas tagged with a different ``document_id`` are stale and ignored, as
    are workflow deltas.
    """
    if delta.type == DeltaType.ID:
        return Artifact(
            document_id=delta.content,
            kind=artifact.kind,
            status=ArtifactStatus.STREAMING,
            is_visible=True,
        )

    if delta.document_id is not None and delta.document_id != artifact.document_id:
        return artifact

    if delta.type == DeltaType.TITLE:
        return artifact.model_copy(update={"title": delta.content, "status": ArtifactStatus.STREAMING})

    if delta.type == DeltaType.KIND:
        try:
            kind = ArtifactKind(delta.content)
        except ValueError:
            logger.debug(f"Ignoring unknown artifact kind: {delta.content}")
            return artifact
        return artifact.model_copy(update={"kind": kind, "status": ArtifactStatus.STREAMING})

    if delta.type == DeltaType.CLEAR:
        return artifact.model_copy(update={"content": "", "status": ArtifactStatus.STREAMING})

    if delta.type in (DeltaType.TEXT_DELTA, DeltaType.SECTION_CONTENT):
        return artifact.model_copy(
            update={"content": artifact.content + delta.content, "status": ArtifactStatus.STREAMING}
        )

    if delta.type == DeltaType.FINISH:
        return artifact.model_copy(update={"status": ArtifactStatus.IDLE})

    if delta.type == DeltaType.ERROR:
        return artifact.model_copy(update={"error": delta.content, "status": ArtifactStatus.IDLE})

    return artifact


class ArtifactStateMachine:
    """
    Stateful wrapper around `reduce_artifact`.

    After `abort()` the artifact is frozen: later deltas, including a late
    ``finish``, are accepted and dropped until the next ``id`` delta.
    """

    def __init__(self, artifact: Optional[Artifact] = None) -> None:
        self._artifact = artifact or INITIAL_ARTIFACT
        self._aborted = False

    @property
    def artifact(self) -> Artifact:
        return self._artifact

    @property
    def aborted(self) -> bool:
        return self._aborted

    def apply(self, delta: RawDelta) -> Artifact:
        """Apply a delta (model or wire form). Unknown delta types are ignored."""
        if not isinstance(delta, ProtocolDelta):
            parsed = parse_delta(delta)
            if parsed is None:
                logger.debug("Ignoring unrecognised delta")
                return self._artifact
            delta = parsed

        if self._aborted:
            if delta.type != DeltaType.ID:
                return self._artifact
            self._aborted = False

        self._artifact = reduce_artifact(self._artifact, delta)
        return self._artifact

    def abort(self) -> Artifact:
        """Freeze the current content and stop applying deltas for this document."""
        self._aborted = True
        self._artifact = self._artifact.model_copy(update={"status": ArtifactStatus.IDLE})
        return self._artifact

    def replay(self, deltas: Iterable[RawDelta]) -> Artifact:
        """Rebuild state from a buffered session, starting from the initial artifact."""
        self._artifact = INITIAL_ARTIFACT
        self._aborted = False
        for delta in deltas:
            self.apply(delta)
        return self._artifact
