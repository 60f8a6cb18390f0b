"""Recursive separator-based text chunking for RAG ingestion."""

import math
from typing import Callable, List, Optional, Sequence

import tiktoken

from document_copilot.config import Settings, get_settings
from document_copilot.models.chunk import Chunk
from document_copilot.utils.errors import ChunkingError
from document_copilot.utils.logging import get_logger

logger = get_logger("chunking_service")

DEFAULT_SEPARATORS = ["\n\n", "\n", " ", ""]


class ChunkingService:
    """
    Split text into bounded, overlapping chunks.

    Separators are tried from coarsest to finest. Only pieces still longer than
    ``chunk_size`` are split by the next separator, and the resulting sub-pieces
    are merged back up to ``chunk_size``. The empty separator splits into single
    characters, so every emitted chunk fits the bound when it is present.

    Lengths are measured in characters by default, or in ``cl100k_base`` tokens
    when the length unit is ``tokens``.
    """

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        separators: Optional[Sequence[str]] = None,
        length_unit: Optional[str] = None,
        encoding_name: str = "cl100k_base",
        settings: Optional[Settings] = None,
    ):
        """
        Initialize the chunking service.

        Args:
            chunk_size: Maximum chunk length (defaults to settings.chunking.chunk_size)
            chunk_overlap: Overlap carried between chunks (defaults to settings.chunking.chunk_overlap)
            separators: Ordered separators, coarsest first
            length_unit: "characters" or "tokens" (defaults to settings.chunking.chunk_length_unit)
            encoding_name: tiktoken encoding used when the unit is tokens

        Raises:
            ChunkingError: If the configuration is invalid
        """
        settings = settings or get_settings()
        self.chunk_size = chunk_size if chunk_size is not None else settings.chunking.chunk_size
        self.chunk_overlap = (
            chunk_overlap if chunk_overlap is not None else settings.chunking.chunk_overlap
        )
        self.separators = list(separators) if separators is not None else list(DEFAULT_SEPARATORS)
        self.length_unit = (length_unit or settings.chunking.chunk_length_unit).lower()

        if self.chunk_size <= 0:
            raise ChunkingError("chunk_size must be > 0", details={"chunk_size": self.chunk_size})
        if self.chunk_overlap < 0:
            raise ChunkingError("overlap must be >= 0", details={"overlap": self.chunk_overlap})
        if self.chunk_overlap >= self.chunk_size:
            raise ChunkingError(
                "overlap must be less than chunk_size",
                details={"overlap": self.chunk_overlap, "chunk_size": self.chunk_size},
            )
        if not self.separators:
            raise ChunkingError("At least one separator is required")

        self._encoding = None
        if self.length_unit == "tokens":
            self._encoding = tiktoken.get_encoding(encoding_name)
            self._length: Callable[[str], int] = self._count_tokens
        elif self.length_unit == "characters":
            self._length = len
        else:
            raise ChunkingError(
                "Unsupported chunk length unit",
                details={"length_unit": self.length_unit, "valid": ["characters", "tokens"]},
            )

    def _count_tokens(self, text: str) -> int:
        return len(self._encoding.encode(text))

    def split(self, text: str) -> List[str]:
        """
        Split normalised text into chunks.

        Returns an empty list for empty or whitespace-only input.

        Raises:
            ChunkingError: If text is None
        """
        if text is None:
            raise ChunkingError("Text is None")
        if not text.strip():
            return []

        pieces = [text]
        for separator in self.separators:
            next_pieces: List[str] = []
            for piece in pieces:
                if self._length(piece) <= self.chunk_size:
                    next_pieces.append(piece)
                else:
                    next_pieces.extend(self._split_and_merge(piece, separator))
            pieces = next_pieces

        return [self._truncate(piece) for piece in pieces if piece.strip()]

    async def chunk_text(self, text: str, source_id: str) -> List[Chunk]:
        """
        Chunk text for a source.

        Args:
            text: Normalised text
            source_id: Source the chunks belong to

        Returns:
            Chunks with monotonically increasing sequence numbers
        """
        parts = self.split(text)
        logger.info(
            "Chunked text",
            extra={
                "source_id": source_id,
                "chunks": len(parts),
                "chunk_size": self.chunk_size,
                "overlap": self.chunk_overlap,
                "length_unit": self.length_unit,
            },
        )
        return [Chunk(text=part, source_id=source_id, sequence=i) for i, part in enumerate(parts)]

    def _split_and_merge(self, text: str, separator: str) -> List[str]:
        if separator == "":
            # character split keeps whitespace so no input is silently lost
            splits = list(text)
        else:
            splits = [s for s in text.split(separator) if s.strip()]
        return self._merge(splits, separator)

    def _merge(self, splits: List[str], separator: str) -> List[str]:
        separator_len = self._length(separator)
        docs: List[str] = []
        current: List[str] = []
        total = 0

        for piece in splits:
            piece_len = self._length(piece)
            if current and total + separator_len + piece_len > self.chunk_size:
                docs.append(separator.join(current))
                current = self._overlap_window(current, separator, piece_len)
                total = self._length(separator.join(current)) if current else 0

            if current:
                total += separator_len
            current.append(piece)
            total += piece_len

        if current:
            docs.append(separator.join(current))
        return docs

    def _overlap_window(self, current: List[str], separator: str, incoming_len: int) -> List[str]:
        """Trailing pieces of a flushed chunk that seed the next one."""
        if self.chunk_overlap == 0:
            return []

        keep = math.floor(len(current) * self.chunk_overlap / self.chunk_size)
        window = current[len(current) - keep :] if keep else []
        separator_len = self._length(separator)
        while window:
            window_len = self._length(separator.join(window))
            if (
                window_len <= self.chunk_overlap
                and window_len + separator_len + incoming_len <= self.chunk_size
            ):
                break
            window = window[1:]
        return window

    def _truncate(self, piece: str) -> str:
        if self._length(piece) <= self.chunk_size:
            return piece
        logger.warning(
            "Hard-truncating piece that exceeds chunk_size",
            extra={"length": self._length(piece), "chunk_size": self.chunk_size},
        )
        if self._encoding is not None:
            return self._encoding.decode(self._encoding.encode(piece)[: self.chunk_size])
        return piece[: self.chunk_size]
