"""Abstract base class for content loaders.

A loader represents one logical source (a text blob, a URL, a directory,
a feed).  It exposes a lazy async sequence of fragments and, optionally,
pushes new fragments later through the incremental-update notification.

Subclasses implement :meth:`BaseLoader.get_unfiltered_chunks`; the base
class cleans every fragment with
:func:`~ragpipe.utils.text_normalizer.clean_string` and drops the ones
that end up empty.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable

import structlog

from ragpipe.models.rag import ContentFragment
from ragpipe.utils.text_normalizer import clean_string

logger = structlog.get_logger(logger_name=__name__)

IncrementalHandler = Callable[[AsyncIterator[ContentFragment]], Awaitable[None]]


class BaseLoader(ABC):
    """Base class for every loader.

    Parameters
    ----------
    unique_id:
        Stable identity of the source.  Two loaders with the same id are
        the same source as far as the orchestrator is concerned.
    chunk_size:
        Target maximum characters per fragment.
    chunk_overlap:
        Characters shared between consecutive fragments.
    can_incrementally_load:
        Whether the loader may push fragments after its initial load.
    """

    def __init__(
        self,
        unique_id: str,
        chunk_size: int = 1000,
        chunk_overlap: int = 0,
        can_incrementally_load: bool = False,
    ) -> None:
        self._unique_id = unique_id
        self._chunk_size = chunk_size
        self._chunk_overlap = chunk_overlap
        self._can_incrementally_load = can_incrementally_load
        self._handlers: list[IncrementalHandler] = []
        self._pending: set[asyncio.Task[None]] = set()
        self._last_chunk_count = 0

    def get_unique_id(self) -> str:
        return self._unique_id

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def chunk_overlap(self) -> int:
        return self._chunk_overlap

    @property
    def can_incrementally_load(self) -> bool:
        return self._can_incrementally_load

    @property
    def last_chunk_count(self) -> int:
        """Number of fragments emitted by the most recent :meth:`get_chunks` run."""
        return self._last_chunk_count

    async def init(self) -> None:
        """Prepare the loader before its first read.  No-op by default."""

    @abstractmethod
    def get_unfiltered_chunks(self) -> AsyncIterator[ContentFragment]:
        """Yield the raw fragments for this source (an async generator)."""

    async def get_chunks(self) -> AsyncIterator[ContentFragment]:
        """Yield cleaned, non-empty fragments for this source."""
        count = 0
        async for fragment in self._clean(self.get_unfiltered_chunks()):
            count += 1
            yield fragment
        self._last_chunk_count = count
        logger.debug("loader_chunks_emitted", loader=self._unique_id, count=count)

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    def on_incremental_chunks(self, handler: IncrementalHandler) -> None:
        """Subscribe *handler* to new-fragment notifications."""
        self._handlers.append(handler)

    def remove_incremental_handler(self, handler: IncrementalHandler) -> None:
        """Unsubscribe *handler*; unknown handlers are ignored."""
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def load_incremental_chunks(
        self, fragments: AsyncIterator[ContentFragment] | Iterable[ContentFragment]
    ) -> list[asyncio.Task[None]]:
        """Notify subscribers that *fragments* are available.

        Each subscribed handler runs as its own task, so notifications are
        not serialized against each other or against queries.  The tasks
        are returned so callers can await them.
        """
        if isinstance(fragments, AsyncIterator):
            collected = [fragment async for fragment in fragments]
        else:
            collected = list(fragments)

        if not self._handlers:
            logger.warning(
                "incremental_chunks_without_subscriber",
                loader=self._unique_id,
                count=len(collected),
            )
            return []

        tasks: list[asyncio.Task[None]] = []
        for handler in self._handlers:
            task = asyncio.create_task(handler(self._clean(_replay(collected))))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            tasks.append(task)

        logger.info(
            "incremental_chunks_available",
            loader=self._unique_id,
            count=len(collected),
            handlers=len(tasks),
        )
        return tasks

    @staticmethod
    async def _clean(
        fragments: AsyncIterator[ContentFragment],
    ) -> AsyncIterator[ContentFragment]:
        async for fragment in fragments:
            text = clean_string(fragment.page_content)
            if not text:
                continue
            yield ContentFragment(page_content=text, metadata=dict(fragment.metadata))


async def _replay(fragments: list[ContentFragment]) -> AsyncIterator[ContentFragment]:
    for fragment in fragments:
        yield fragment
