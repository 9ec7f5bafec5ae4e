"""Anthropic generation model adapter.

Wraps the ``anthropic`` async client to implement
:class:`~ragpipe.interfaces.model.BaseGenerationModel`.

Differences from the OpenAI adapter:
    - the system prompt is a top-level parameter, not a message
    - response content is a list of blocks; text blocks are joined
"""

from __future__ import annotations

import anthropic
import structlog

from ragpipe.config.settings import Settings
from ragpipe.interfaces.model import BaseGenerationModel
from ragpipe.models.rag import ConversationEntry, RetrievedFragment
from ragpipe.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "claude-sonnet-4-20250514"


class AnthropicModel(BaseGenerationModel):
    """Generation model backed by the Anthropic Messages API."""

    def __init__(
        self,
        settings: Settings,
        temperature: float | None = None,
        max_tokens: int = 1000,
    ) -> None:
        super().__init__(temperature=temperature)
        self._api_key = settings.anthropic_api_key
        self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
        self._model = settings.anthropic_model or _DEFAULT_MODEL
        self._max_tokens = max_tokens

    async def run_query(
        self,
        system: str,
        user_query: str,
        context: list[RetrievedFragment],
        past_conversations: list[ConversationEntry],
    ) -> str:
        messages = [{"role": e.role, "content": e.content} for e in past_conversations]
        messages.append({"role": "user", "content": user_query})

        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=self.build_system_prompt(system, context),
                messages=messages,
                temperature=self.temperature,
            )
        except anthropic.APIError as exc:
            raise LLMError(
                message=f"Anthropic API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        text_blocks = [block.text for block in response.content if block.type == "text"]
        if not text_blocks:
            raise LLMError(
                message="Anthropic returned no text content",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "anthropic_completion",
            model=self._model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        return "\n".join(text_blocks)

    def get_provider_name(self) -> str:
        return "anthropic"

    def is_available(self) -> bool:
        return bool(self._api_key)
