"""Application settings loaded from environment variables via pydantic-settings.

Field names map to upper-case environment variables automatically
(``openai_api_key`` <- ``OPENAI_API_KEY``).  A ``.env`` file in the working
directory is read as a lower-priority source.  Empty strings mean
"not configured".
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_QUERY_TEMPLATE = (
    "You are a helpful human like chat bot. Use relevant provided context and chat history "
    "to answer the query at the end. Answer in full. "
    "If you don't know the answer, just say that you don't know, don't try to make up an answer. "
    "Do not use words like context or training data when responding. "
    "You can say you do not have all the information but do not indicate that you are not a reliable source."
)


class Settings(BaseSettings):
    """ragpipe settings.

    Environment variables override defaults.  Loaded from .env when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Generation models ===
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (Fireworks, TogetherAI, ...)
    openai_text_model: str = ""
    openai_embedding_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = ""

    # === Backends ===
    embedding_provider: Literal["fastembed", "openai"] = "fastembed"
    fastembed_model: str = "BAAI/bge-small-en-v1.5"
    vector_store: Literal["chromadb", "memory"] = "chromadb"
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "ragpipe"
    cache_backend: Literal["memory", "sqlite", "none"] = "sqlite"
    cache_db_path: str = "data/loaders.db"
    reranker_model: str = ""  # empty disables reranking

    # === Retrieval tuning ===
    search_result_count: int = 7
    embedding_relevance_cut_off: float = 0.0
    insert_batch_size: int = 500
    temperature: float = 0.1
    query_template: str = DEFAULT_QUERY_TEMPLATE

    # === App ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_llm_providers(self) -> list[str]:
        """Return the generation providers that have API keys configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.anthropic_api_key:
            providers.append("anthropic")
        return providers
