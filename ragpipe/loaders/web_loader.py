"""Web page loader using httpx and trafilatura.

Fetches HTML via httpx and extracts the main readable content with
trafilatura, stripping navigation, ads and boilerplate.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import structlog
import trafilatura

from ragpipe.interfaces.loader import BaseLoader
from ragpipe.loaders.chunker import TextChunker
from ragpipe.models.rag import ContentFragment
from ragpipe.utils.errors import LoaderError
from ragpipe.utils.text_normalizer import md5_hex

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 15.0
_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; ragpipe/0.1)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


class WebLoader(BaseLoader):
    """Loads the readable text of one URL.

    Parameters
    ----------
    url:
        Page to fetch.  Its MD5 is the loader identity.
    http_client:
        Optional shared ``httpx.AsyncClient``; one is created per fetch
        otherwise.
    """

    def __init__(
        self,
        url: str,
        chunk_size: int = 2000,
        chunk_overlap: int = 0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(f"WebLoader_{md5_hex(url)}", chunk_size, chunk_overlap)
        self._url = url
        self._client = http_client

    async def _fetch(self) -> str:
        try:
            if self._client is not None:
                response = await self._client.get(self._url)
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(_DEFAULT_TIMEOUT),
                    headers=_DEFAULT_HEADERS,
                    follow_redirects=True,
                ) as client:
                    response = await client.get(self._url)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise LoaderError(
                message=f"Timeout fetching {self._url}: {exc}",
                provider_name="web_loader",
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise LoaderError(
                message=f"HTTP {exc.response.status_code} for {self._url}",
                provider_name="web_loader",
            ) from exc
        except httpx.HTTPError as exc:
            raise LoaderError(
                message=f"HTTP error fetching {self._url}: {exc}",
                provider_name="web_loader",
            ) from exc
        return response.text

    async def get_unfiltered_chunks(self) -> AsyncIterator[ContentFragment]:
        html = await self._fetch()
        text = trafilatura.extract(html, include_comments=False, include_tables=True)
        if not text:
            logger.warning("trafilatura_extraction_empty", url=self._url)
            return

        chunker = TextChunker(self.chunk_size, self.chunk_overlap)
        chunks = chunker.split_text(text)
        logger.info("web_page_loaded", url=self._url, text_length=len(text), chunks=len(chunks))
        for chunk in chunks:
            yield ContentFragment(
                page_content=chunk,
                metadata={"type": "WebLoader", "source": self._url},
            )
