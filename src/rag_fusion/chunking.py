from __future__ import annotations

import logging
import math
import re
from typing import Any

from .schema import Chunk, DocumentChunk
from .settings import ChunkingSettings, validate_chunking

logger = logging.getLogger(__name__)

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n")
_SENTENCE = re.compile(r"[^.!?]*(?:[.!?]+|$)")


class Chunker:
    """Split documents into token-bounded, overlapping segments for embedding.

    Token counts are estimated from character length, so the chunker needs
    no tokenizer model.
    """

    def __init__(self, settings: ChunkingSettings | None = None):
        self.settings = settings or ChunkingSettings()
        validate_chunking(self.settings.max_tokens, self.settings.overlap, self.settings.chars_per_token)

    @property
    def chars_per_token(self) -> int:
        return self.settings.chars_per_token

    def estimate_tokens(self, text: str | None) -> int:
        if not text:
            return 0
        return math.ceil(len(text) / self.chars_per_token)

    def get_overlap_text(self, text: str, overlap_tokens: int) -> str:
        """Return the tail of `text` to repeat at the start of the next chunk.

        The tail spans `overlap_tokens * chars_per_token` characters and is
        advanced past the first space when that space falls in its first
        half, so the overlap does not open mid-word.
        """
        if overlap_tokens <= 0 or not text:
            return ""
        estimated_chars = overlap_tokens * self.chars_per_token
        overlap_text = text[-estimated_chars:]

        first_space = overlap_text.find(" ")
        if 0 < first_space < estimated_chars / 2:
            return overlap_text[first_space + 1 :]
        return overlap_text

    def chunk_text(
        self,
        text: str | None,
        max_tokens: int | None = None,
        overlap: int | None = None,
    ) -> list[Chunk]:
        """Split text on paragraph, then sentence, boundaries.

        Paragraphs accumulate until the next one would exceed `max_tokens`;
        the closed chunk's tail seeds the next chunk as overlap. Oversized
        paragraphs are split by sentence the same way. A run of text with
        no sentence delimiter is kept whole even when it exceeds the limit.

        Args:
            text: Document text.
            max_tokens: Token budget per chunk; defaults to the settings.
            overlap: Overlap tokens between consecutive chunks.

        Returns:
            Chunks whose `index` is their position and whose `total_chunks`
            is the number of chunks returned.
        """
        max_tokens = self.settings.max_tokens if max_tokens is None else max_tokens
        overlap = self.settings.overlap if overlap is None else overlap
        validate_chunking(max_tokens, overlap, self.chars_per_token)

        if not text or not text.strip():
            return []
        if self.estimate_tokens(text) <= max_tokens:
            return [Chunk(text=text, index=0, total_chunks=1)]

        pieces: list[str] = []
        current = ""
        current_tokens = 0

        def close_current() -> None:
            stripped = current.strip()
            if stripped:
                pieces.append(stripped)

        for paragraph in _PARAGRAPH_BREAK.split(text):
            if not paragraph.strip():
                continue
            paragraph_tokens = self.estimate_tokens(paragraph)

            if paragraph_tokens > max_tokens:
                if current:
                    close_current()
                    current = ""
                    current_tokens = 0

                sentences = [s.strip() for s in _SENTENCE.findall(paragraph) if s.strip()] or [paragraph.strip()]
                for sentence in sentences:
                    sentence_tokens = self.estimate_tokens(sentence)
                    if current and current_tokens + sentence_tokens > max_tokens:
                        close_current()
                        tail = self.get_overlap_text(current, overlap)
                        current = f"{tail} {sentence}" if tail else sentence
                        current_tokens = self.estimate_tokens(current)
                    else:
                        current = f"{current} {sentence}" if current else sentence
                        current_tokens += sentence_tokens
                continue

            if current and current_tokens + paragraph_tokens > max_tokens:
                close_current()
                tail = self.get_overlap_text(current, overlap)
                current = f"{tail}\n\n{paragraph}" if tail else paragraph
                current_tokens = self.estimate_tokens(current)
            else:
                current = f"{current}\n\n{paragraph}" if current else paragraph
                current_tokens += paragraph_tokens

        if current:
            close_current()

        total = len(pieces)
        logger.debug("Chunked %d characters into %d chunks (max_tokens=%d)", len(text), total, max_tokens)
        return [Chunk(text=piece, index=index, total_chunks=total) for index, piece in enumerate(pieces)]

    def chunk_document(
        self,
        content: str | None,
        metadata: dict[str, Any] | None = None,
        max_tokens: int | None = None,
        overlap: int | None = None,
    ) -> list[DocumentChunk]:
        """Chunk a document and attach its metadata to every chunk."""
        metadata = {} if metadata is None else metadata
        return [
            DocumentChunk(text=chunk.text, index=chunk.index, total_chunks=chunk.total_chunks, metadata=metadata)
            for chunk in self.chunk_text(content, max_tokens=max_tokens, overlap=overlap)
        ]
