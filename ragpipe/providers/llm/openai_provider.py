"""OpenAI-compatible generation model adapter.

Wraps the ``openai`` async client to implement
:class:`~ragpipe.interfaces.model.BaseGenerationModel`.  When
``openai_base_url`` is configured (Fireworks, TogetherAI, Groq, ...) the
client points at that URL instead of the default OpenAI endpoint.
"""

from __future__ import annotations

import openai
import structlog

from ragpipe.config.settings import Settings
from ragpipe.interfaces.model import BaseGenerationModel
from ragpipe.models.rag import ConversationEntry, RetrievedFragment
from ragpipe.utils.errors import LLMError

logger = structlog.get_logger(logger_name=__name__)


class OpenAIModel(BaseGenerationModel):
    """Generation model backed by an OpenAI-compatible chat completions API.

    Uses ``gpt-4o-mini`` unless ``openai_text_model`` overrides it.  The
    system prompt carries the query template plus the retrieved context;
    past turns of the conversation are replayed before the new question.
    """

    def __init__(
        self,
        settings: Settings,
        temperature: float | None = None,
        max_tokens: int = 1000,
    ) -> None:
        super().__init__(temperature=temperature)
        self._api_key = settings.openai_api_key
        self._max_tokens = max_tokens

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(60.0, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._model = settings.openai_text_model or "gpt-4o-mini"
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    async def run_query(
        self,
        system: str,
        user_query: str,
        context: list[RetrievedFragment],
        past_conversations: list[ConversationEntry],
    ) -> str:
        messages: list[dict[str, str]] = [
            {"role": "system", "content": self.build_system_prompt(system, context)},
        ]
        messages.extend({"role": e.role, "content": e.content} for e in past_conversations)
        messages.append({"role": "user", "content": user_query})

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self._max_tokens,
            )
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if content is None:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=self._model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        return bool(self._api_key)
