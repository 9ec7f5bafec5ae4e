"""Abstract base class for generation models.

:class:`BaseGenerationModel` owns the parts every model adapter shares:
the sampling temperature, per-conversation history, and turning a query
template plus retrieved context into a system prompt.  Adapters only
implement :meth:`BaseGenerationModel.run_query`, the actual SDK call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import structlog

from ragpipe.models.rag import ConversationEntry, RetrievedFragment

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TEMPERATURE = 0.1
DEFAULT_CONVERSATION_ID = "default"


# Concrete implementations:
#   OpenAIModel    -- OpenAI or any OpenAI-compatible chat endpoint
#   AnthropicModel -- Anthropic Messages API
# Located in: ragpipe/providers/llm/
class BaseGenerationModel(ABC):
    """Contract and shared behaviour for answer-generating models.

    Parameters
    ----------
    temperature:
        Sampling temperature.  When ``None`` the model takes the
        orchestrator's default via :meth:`set_default_temperature`.
    max_history:
        Number of conversation entries kept per conversation id (oldest
        entries are dropped first).
    """

    def __init__(self, temperature: float | None = None, max_history: int = 20) -> None:
        self._temperature = temperature
        self._max_history = max_history
        self._conversations: dict[str, list[ConversationEntry]] = {}

    @property
    def temperature(self) -> float:
        if self._temperature is None:
            return DEFAULT_TEMPERATURE
        return self._temperature

    def set_default_temperature(self, temperature: float) -> None:
        """Apply *temperature* unless one was given at construction."""
        if self._temperature is None:
            self._temperature = temperature

    async def init(self) -> None:
        """Prepare the model before first use.  No-op by default."""

    async def query(
        self,
        system: str,
        user_query: str,
        context: list[RetrievedFragment],
        conversation_id: str | None = None,
    ) -> str:
        """Answer *user_query* grounded in *context*.

        The answer and the question are appended to the history of
        *conversation_id* (``"default"`` when not given) after the model
        replies, so a failed call leaves the history untouched.
        """
        conv_id = conversation_id or DEFAULT_CONVERSATION_ID
        past = list(self._conversations.get(conv_id, []))

        result = await self.run_query(system, user_query, context, past)

        history = self._conversations.setdefault(conv_id, [])
        history.append(ConversationEntry(role="user", content=user_query))
        history.append(ConversationEntry(role="assistant", content=result))
        if len(history) > self._max_history:
            del history[: len(history) - self._max_history]

        logger.debug(
            "model_query_complete",
            provider=self.get_provider_name(),
            conversation_id=conv_id,
            context_size=len(context),
            history_size=len(history),
        )
        return result

    def get_conversation(self, conversation_id: str | None = None) -> list[ConversationEntry]:
        """Return a copy of the history for *conversation_id*."""
        return list(self._conversations.get(conversation_id or DEFAULT_CONVERSATION_ID, []))

    def clear_conversation(self, conversation_id: str | None = None) -> None:
        self._conversations.pop(conversation_id or DEFAULT_CONVERSATION_ID, None)

    @staticmethod
    def build_system_prompt(system: str, context: list[RetrievedFragment]) -> str:
        """Join *system* and the context bodies into one system prompt."""
        supporting = "; ".join(fragment.page_content for fragment in context)
        return f"{system} Supporting context: {supporting}"

    @abstractmethod
    async def run_query(
        self,
        system: str,
        user_query: str,
        context: list[RetrievedFragment],
        past_conversations: list[ConversationEntry],
    ) -> str:
        """Call the underlying model and return its answer text.

        Raises
        ------
        ragpipe.utils.errors.LLMError
            If the API call fails or returns no text.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this model."""
