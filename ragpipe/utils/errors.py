"""Custom exception hierarchy for ragpipe.

All application exceptions inherit from :class:`RagPipeError`, which
carries an optional ``provider_name`` so error handlers can identify which
collaborator (e.g. "openai", "chromadb", "sqlite_cache") caused the failure.

    RagPipeError  (base -- catch-all for any ragpipe error)
    +-- ConfigurationError  (missing collaborator / bad settings)
    +-- PipelineError       (lifecycle misuse of the orchestrator)
    +-- LoaderError         (a content source could not be read)
    +-- LLMError            (generation model call failure)
    +-- RAGError            (embedding or vector-store failure)
"""


class RagPipeError(Exception):
    """Base exception for all ragpipe errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets
    for log output, e.g. ``[chromadb] insert failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(RagPipeError):
    """Raised when a required collaborator or setting is missing or invalid."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(RagPipeError):
    """Raised when the orchestrator is used out of lifecycle order."""

    def __init__(
        self,
        message: str = "Pipeline execution failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LoaderError(RagPipeError):
    """Raised when a loader cannot read its source."""

    def __init__(
        self,
        message: str = "Content loading failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(RagPipeError):
    """Raised when a generation model call fails or returns nothing usable."""

    def __init__(
        self,
        message: str = "LLM call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RAGError(RagPipeError):
    """Raised when an embedding or vector-store operation fails."""

    def __init__(
        self,
        message: str = "RAG operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
