"""Synthesis driver: retrieve snippets, prompt the model and stream protocol deltas."""

import asyncio
import uuid
from typing import AsyncIterator, Dict, List, Optional, Union

from document_copilot.models.embedding import SearchResult
from document_copilot.models.protocol import DeltaType, ProtocolDelta
from document_copilot.models.synthesis import TERMINAL_STATES, SectionRequest, SessionState, SynthesisRequest
from document_copilot.models.template import TemplateSection
from document_copilot.services.llm_service import LLMService
from document_copilot.services.prompt_builder import PromptBuilder
from document_copilot.services.retrieval_service import RetrievalService
from document_copilot.utils.logging import get_logger

logger = get_logger("synthesis_service")


class SynthesisSession:
    """
    One document generation run.

    Iterating the session yields ``id``, ``kind``, ``title`` and ``clear``,
    then one ``text-delta`` per provider fragment, then ``finish``. A failure
    at any point ends the stream with a single ``error`` delta; fragments
    already emitted are kept. ``cancel()`` (or closing the iterator) stops
    forwarding and ends the session without an error delta.
    """

    def __init__(
        self,
        request: Union[SynthesisRequest, SectionRequest],
        retrieval_service: RetrievalService,
        llm_service: LLMService,
        prompt_builder: PromptBuilder,
    ) -> None:
        self.request = request
        self.id = str(uuid.uuid4())
        self.document_id: Optional[str] = request.document_id or str(uuid.uuid4())
        self.state = SessionState.PENDING
        self.snippets: List[SearchResult] = []
        self.error: Optional[str] = None
        self._draft: List[str] = []
        self._retrieval = retrieval_service
        self._llm = llm_service
        self._prompts = prompt_builder
        self._cancelled = False
        self._started = False

    @property
    def content(self) -> str:
        """Text generated so far."""
        return "".join(self._draft)

    @property
    def is_done(self) -> bool:
        return self.state in TERMINAL_STATES

    def cancel(self) -> None:
        """Stop forwarding fragments; the stream ends in CANCELLED."""
        if self.is_done:
            return
        self._cancelled = True
        if self.state == SessionState.PENDING:
            self._transition(SessionState.CANCELLED)

    def __aiter__(self) -> AsyncIterator[ProtocolDelta]:
        return self.deltas()

    def _delta(self, delta_type: DeltaType, content: str = "") -> ProtocolDelta:
        return ProtocolDelta(
            type=delta_type,
            content=content,
            document_id=self.document_id,
            message_id=self.request.message_id,
        )

    def _transition(self, state: SessionState) -> None:
        logger.debug(f"Session {self.id}: {self.state.value} -> {state.value}")
        self.state = state

    def _opening(self) -> List[ProtocolDelta]:
        request = self.request
        return [
            self._delta(DeltaType.ID, self.document_id),
            self._delta(DeltaType.KIND, request.kind.value),
            self._delta(DeltaType.TITLE, request.title),
            self._delta(DeltaType.CLEAR),
        ]

    def _query(self) -> str:
        return f"{self.request.title}\n{self.request.description}".strip()

    def _messages(self) -> List[Dict[str, str]]:
        return self._prompts.build_messages(self.request, self.snippets)

    def _fragment(self, fragment: str) -> ProtocolDelta:
        return self._delta(DeltaType.TEXT_DELTA, fragment)

    def _closing(self) -> List[ProtocolDelta]:
        return [self._delta(DeltaType.FINISH)]

    @property
    def _label(self) -> str:
        return f"document {self.document_id} (kind={self.request.kind.value})"

    async def deltas(self) -> AsyncIterator[ProtocolDelta]:
        """Run the session, yielding deltas in FIFO order. Can only be iterated once."""
        if self._started:
            raise RuntimeError(f"Synthesis session {self.id} has already been started")
        self._started = True
        if self._cancelled:
            return

        request = self.request
        try:
            for delta in self._opening():
                yield delta

            self._transition(SessionState.RETRIEVING)
            self.snippets = await self._retrieval.find_relevant_content(
                request.scope_id, self._query(), k=request.k, min_similarity=request.min_similarity
            )
            if self._cancelled:
                self._transition(SessionState.CANCELLED)
                return

            messages = self._messages()
            self._transition(SessionState.GENERATING)
            logger.info(
                f"Generating {self._label}: scope={request.scope_id}, snippets={len(self.snippets)}"
            )

            provider_stream = self._llm.stream_completion(messages)
            try:
                async for fragment in provider_stream:
                    if self._cancelled:
                        break
                    self._draft.append(fragment)
                    yield self._fragment(fragment)
            finally:
                await provider_stream.aclose()

            if self._cancelled:
                self._transition(SessionState.CANCELLED)
                logger.info(f"Session {self.id} cancelled after {len(self.content)} characters")
                return

            self._transition(SessionState.FINISHED)
            for delta in self._closing():
                yield delta
            logger.info(f"Generated {self._label}: characters={len(self.content)}")

        except (GeneratorExit, asyncio.CancelledError):
            self._cancelled = True
            self._transition(SessionState.CANCELLED)
            raise
        except Exception as e:
            self.error = str(e) or type(e).__name__
            self._transition(SessionState.FAILED)
            logger.error(f"Synthesis session {self.id} failed: {e}", exc_info=True)
            yield self._delta(DeltaType.ERROR, self.error)


class SectionSession(SynthesisSession):
    """
    Write a single template section.

    Retrieval is keyed on the section title and its requirements. Each
    provider fragment is emitted as a ``section-content`` delta naming the
    section; there are no header or ``finish`` deltas, the written text is
    available as ``content`` once the session is FINISHED. Deltas are tagged
    with the request's document id, if any, so they extend that document.
    """

    def __init__(
        self,
        request: SectionRequest,
        retrieval_service: RetrievalService,
        llm_service: LLMService,
        prompt_builder: PromptBuilder,
    ) -> None:
        super().__init__(request, retrieval_service, llm_service, prompt_builder)
        self.document_id = request.document_id

    @property
    def section(self) -> TemplateSection:
        return self.request.section

    def _opening(self) -> List[ProtocolDelta]:
        return []

    def _query(self) -> str:
        return " ".join([self.section.title, *self.section.requirements])

    def _messages(self) -> List[Dict[str, str]]:
        return self._prompts.build_section_messages(self.section, self.snippets)

    def _fragment(self, fragment: str) -> ProtocolDelta:
        return ProtocolDelta(
            type=DeltaType.SECTION_CONTENT,
            content=fragment,
            section=self.section.title,
            document_id=self.document_id,
            message_id=self.request.message_id,
        )

    def _closing(self) -> List[ProtocolDelta]:
        return []

    @property
    def _label(self) -> str:
        return f'section "{self.section.title}"'


class SynthesisService:
    """Create synthesis sessions."""

    def __init__(
        self,
        retrieval_service: RetrievalService,
        llm_service: LLMService,
        prompt_builder: PromptBuilder,
    ) -> None:
        self._retrieval = retrieval_service
        self._llm = llm_service
        self._prompts = prompt_builder

    def start(self, request: SynthesisRequest) -> SynthesisSession:
        """Create a session for the request. Work begins when the session is iterated."""
        return SynthesisSession(request, self._retrieval, self._llm, self._prompts)

    def write_section(
        self,
        scope_id: str,
        section: TemplateSection,
        document_id: Optional[str] = None,
        message_id: Optional[str] = None,
        k: Optional[int] = None,
    ) -> SectionSession:
        """Create a session that writes one template section from the scope's sources."""
        request = SectionRequest(
            scope_id=scope_id, section=section, document_id=document_id, message_id=message_id, k=k
        )
        return SectionSession(request, self._retrieval, self._llm, self._prompts)
