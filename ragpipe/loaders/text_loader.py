"""Loader for an in-memory block of text."""

from __future__ import annotations

from collections.abc import AsyncIterator

from ragpipe.interfaces.loader import BaseLoader
from ragpipe.loaders.chunker import TextChunker
from ragpipe.models.rag import ContentFragment
from ragpipe.utils.text_normalizer import clean_string, md5_hex, truncate_center


class TextLoader(BaseLoader):
    """Chunks a text string.  Identity is the MD5 of the text itself.

    The ``source`` metadata is the start of the cleaned text, which is
    what shows up as the citation when a fragment is used as context.
    """

    def __init__(self, text: str, chunk_size: int = 300, chunk_overlap: int = 0) -> None:
        super().__init__(f"TextLoader_{md5_hex(text)}", chunk_size, chunk_overlap)
        self._text = text

    async def get_unfiltered_chunks(self) -> AsyncIterator[ContentFragment]:
        source = truncate_center(clean_string(self._text), 50)
        chunker = TextChunker(self.chunk_size, self.chunk_overlap)
        for chunk in chunker.split_text(self._text):
            yield ContentFragment(
                page_content=chunk,
                metadata={"type": "TextLoader", "source": source},
            )
