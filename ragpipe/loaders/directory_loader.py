"""Loader for every matching text file below a directory.

Each file is a sub-source: its fragments carry the file path as
``source`` and the directory as ``original_source``.  A file that cannot
be read or decoded is logged and skipped so one bad file does not abort
the whole directory.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

import structlog

from ragpipe.interfaces.loader import BaseLoader
from ragpipe.loaders.chunker import TextChunker
from ragpipe.models.rag import ContentFragment
from ragpipe.utils.errors import LoaderError
from ragpipe.utils.text_normalizer import md5_hex

logger = structlog.get_logger(logger_name=__name__)


class DirectoryLoader(BaseLoader):
    """Loads ``pattern``-matching files under *path* (recursively), sorted by path."""

    def __init__(
        self,
        path: str | Path,
        pattern: str = "*.txt",
        chunk_size: int = 1000,
        chunk_overlap: int = 0,
        encoding: str = "utf-8",
    ) -> None:
        self._path = Path(path)
        self._pattern = pattern
        self._encoding = encoding
        super().__init__(
            f"DirectoryLoader_{md5_hex(f'{self._path.resolve()}:{pattern}')}",
            chunk_size,
            chunk_overlap,
        )

    async def init(self) -> None:
        if not self._path.is_dir():
            raise LoaderError(
                message=f"Directory not found: {self._path}",
                provider_name="directory_loader",
            )

    async def get_unfiltered_chunks(self) -> AsyncIterator[ContentFragment]:
        files = sorted(p for p in self._path.rglob(self._pattern) if p.is_file())
        logger.info("directory_scan", path=str(self._path), pattern=self._pattern, files=len(files))

        chunker = TextChunker(self.chunk_size, self.chunk_overlap)
        for file_path in files:
            try:
                text = await asyncio.to_thread(file_path.read_text, encoding=self._encoding)
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("directory_file_skipped", file=str(file_path), error=str(exc))
                continue

            for chunk in chunker.split_text(text):
                yield ContentFragment(
                    page_content=chunk,
                    metadata={
                        "type": "DirectoryLoader",
                        "source": str(file_path),
                        "original_source": str(self._path),
                    },
                )
