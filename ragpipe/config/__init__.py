"""Configuration module -- exports Settings and load_config."""

from ragpipe.config.loader import load_config
from ragpipe.config.settings import DEFAULT_QUERY_TEMPLATE, Settings

__all__ = ["DEFAULT_QUERY_TEMPLATE", "Settings", "load_config"]
