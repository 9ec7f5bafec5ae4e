"""Generation model adapters."""

from ragpipe.providers.llm.anthropic_provider import AnthropicModel
from ragpipe.providers.llm.openai_provider import OpenAIModel

__all__ = ["AnthropicModel", "OpenAIModel"]
