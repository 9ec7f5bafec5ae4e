"""Character-window text chunking that keeps paragraph boundaries.

Text is split on blank lines into paragraphs, and paragraphs are packed
greedily into chunks of at most ``chunk_size`` characters.  Consecutive
chunks share up to ``chunk_overlap`` characters of trailing paragraphs.

A paragraph longer than the budget is split at sentence boundaries with an
abbreviation-aware splitter ("Dr.", "vs." do not end a sentence); a single
sentence longer than the budget is split on word boundaries.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

_ABBREVIATIONS = frozenset(
    {
        "Dr",
        "Mr",
        "Mrs",
        "Ms",
        "Prof",
        "Jr",
        "Sr",
        "St",
        "Vol",
        "No",
        "vs",
        "etc",
        "approx",
        "dept",
        "est",
        "inc",
        "ltd",
        "co",
        "e.g",
        "i.e",
    }
)


class TextChunker:
    """Splits text into overlapping chunks preserving paragraph boundaries.

    Parameters
    ----------
    chunk_size:
        Maximum characters per chunk.
    chunk_overlap:
        Maximum characters of trailing context repeated at the start of the
        next chunk.  Must be smaller than *chunk_size*.
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 0) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if not 0 <= chunk_overlap < chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size), got {chunk_overlap} for size {chunk_size}"
            )
        self._chunk_size = chunk_size
        self._overlap = chunk_overlap

    def split_text(self, text: str) -> list[str]:
        """Split *text* into chunk strings.  Blank input returns ``[]``."""
        if not text or not text.strip():
            return []

        chunks = self._accumulate(self._split_paragraphs(text), joiner="\n\n")
        logger.debug("chunking_complete", num_chunks=len(chunks), chars=len(text))
        return chunks

    # ------------------------------------------------------------------
    # Paragraph / sentence splitting
    # ------------------------------------------------------------------

    @staticmethod
    def _split_paragraphs(text: str) -> list[str]:
        parts = re.split(r"\n\s*\n", text)
        return [p.strip() for p in parts if p.strip()]

    @staticmethod
    def _split_sentences(text: str) -> list[str]:
        """Split at ``.``/``!``/``?`` followed by whitespace, honouring abbreviations.

        Periods after known abbreviations are masked with ``\\x00`` (same
        length, so indices stay aligned with the original text).
        """
        masked = text
        for abbr in _ABBREVIATIONS:
            masked = masked.replace(f"{abbr}.", f"{abbr}\x00")

        sentences: list[str] = []
        last = 0
        for match in re.finditer(r"[.!?](?:\s|$)", masked):
            end = match.end()
            sentence = text[last:end].strip()
            if sentence:
                sentences.append(sentence)
            last = end

        remainder = text[last:].strip()
        if remainder:
            sentences.append(remainder)
        return sentences if sentences else [text]

    def _split_words(self, sentence: str) -> list[str]:
        pieces: list[str] = []
        current = ""
        for word in sentence.split():
            while len(word) > self._chunk_size:
                if current:
                    pieces.append(current)
                    current = ""
                pieces.append(word[: self._chunk_size])
                word = word[self._chunk_size :]
            if not word:
                continue
            candidate = f"{current} {word}" if current else word
            if len(candidate) > self._chunk_size:
                pieces.append(current)
                current = word
            else:
                current = candidate
        if current:
            pieces.append(current)
        return pieces

    # ------------------------------------------------------------------
    # Chunk accumulation
    # ------------------------------------------------------------------

    def _accumulate(self, parts: list[str], joiner: str) -> list[str]:
        """Greedily pack *parts* into chunks, recursing into oversize parts."""
        chunks: list[str] = []
        current: list[str] = []

        def size(items: list[str]) -> int:
            return len(joiner.join(items))

        for part in parts:
            if len(part) > self._chunk_size:
                if current:
                    chunks.append(joiner.join(current))
                    current = []
                if joiner == "\n\n":
                    chunks.extend(self._accumulate(self._split_sentences(part), joiner=" "))
                else:
                    chunks.extend(self._split_words(part))
                continue

            if current and size([*current, part]) > self._chunk_size:
                chunks.append(joiner.join(current))
                current = self._overlap_tail(current, joiner)
                # Overlap must never push the next chunk over budget.
                while current and size([*current, part]) > self._chunk_size:
                    current.pop(0)

            current.append(part)

        if current:
            chunks.append(joiner.join(current))
        return chunks

    def _overlap_tail(self, parts: list[str], joiner: str) -> list[str]:
        """Return trailing *parts* whose joined length fits in the overlap budget."""
        tail: list[str] = []
        for part in reversed(parts):
            if len(joiner.join([part, *tail])) > self._overlap:
                break
            tail.insert(0, part)
        return tail
