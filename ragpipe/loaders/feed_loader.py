"""Incrementally-updatable loader for a stream of text entries.

A feed starts with an initial set of entries and later receives new ones
through :meth:`FeedLoader.push`.  Pushed entries are chunked and handed to
every subscriber (normally the orchestrator) as a new-fragments
notification, so they are indexed without re-reading the whole feed.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable

import structlog

from ragpipe.interfaces.loader import BaseLoader
from ragpipe.loaders.chunker import TextChunker
from ragpipe.models.rag import ContentFragment
from ragpipe.utils.text_normalizer import md5_hex

logger = structlog.get_logger(logger_name=__name__)


class FeedLoader(BaseLoader):
    """A named feed of text entries that can grow after registration.

    Parameters
    ----------
    name:
        Feed name; its MD5 is the loader identity.
    entries:
        Initial ``(text, source)`` pairs.
    """

    def __init__(
        self,
        name: str,
        entries: Iterable[tuple[str, str]] = (),
        chunk_size: int = 1000,
        chunk_overlap: int = 0,
    ) -> None:
        super().__init__(
            f"FeedLoader_{md5_hex(name)}",
            chunk_size,
            chunk_overlap,
            can_incrementally_load=True,
        )
        self._name = name
        self._entries: list[tuple[str, str]] = list(entries)
        self._chunker = TextChunker(chunk_size, chunk_overlap)

    def _fragments(self, entries: Iterable[tuple[str, str]]) -> list[ContentFragment]:
        return [
            ContentFragment(
                page_content=chunk,
                metadata={"type": "FeedLoader", "source": source, "feed": self._name},
            )
            for text, source in entries
            for chunk in self._chunker.split_text(text)
        ]

    async def get_unfiltered_chunks(self) -> AsyncIterator[ContentFragment]:
        for fragment in self._fragments(self._entries):
            yield fragment

    async def push(self, texts: Iterable[str], source: str) -> list[asyncio.Task[None]]:
        """Append entries to the feed and notify subscribers.

        Returns the handler tasks so callers can wait for indexing.
        """
        new_entries = [(text, source) for text in texts]
        self._entries.extend(new_entries)
        fragments = self._fragments(new_entries)
        logger.debug("feed_push", feed=self._name, entries=len(new_entries), fragments=len(fragments))
        return await self.load_incremental_chunks(fragments)
