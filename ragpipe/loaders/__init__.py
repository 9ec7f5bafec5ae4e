"""Content loaders.

Every loader subclasses :class:`~ragpipe.interfaces.loader.BaseLoader` and
derives a stable ``unique_id`` from its source, so registering the same
source twice replaces the earlier ingestion instead of duplicating it.
"""

from ragpipe.loaders.chunker import TextChunker
from ragpipe.loaders.directory_loader import DirectoryLoader
from ragpipe.loaders.feed_loader import FeedLoader
from ragpipe.loaders.text_loader import TextLoader
from ragpipe.loaders.web_loader import WebLoader

__all__ = ["DirectoryLoader", "FeedLoader", "TextChunker", "TextLoader", "WebLoader"]
