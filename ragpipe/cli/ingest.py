# =============================================================================
# ragpipe/cli/ingest.py -- Corpus management and query CLI
# =============================================================================
#
# Subcommands:
#
#   text      -- ingest a string (or a text file's contents) as one source
#   url       -- ingest the readable text of a web page
#   directory -- ingest every matching file under a directory
#   query     -- answer a question from the indexed corpus
#   count     -- show the number of stored vectors
#   index     -- create / ensure the vector index
#   delete    -- delete every vector of one loader id (needs --yes)
#   reset     -- empty the vector store (needs --yes)
#
# Providers are chosen from Settings (environment / .env):
#   embedding:    EMBEDDING_PROVIDER = fastembed | openai
#   vector store: VECTOR_STORE       = chromadb | memory
#   cache:        CACHE_BACKEND      = sqlite | memory | none
#   model:        Anthropic if ANTHROPIC_API_KEY is set, else OpenAI
#   reranker:     RERANKER_MODEL (empty disables)
#
# Usage examples:
#   python -m ragpipe.cli text --file notes.txt
#   python -m ragpipe.cli url --url https://example.com/post
#   python -m ragpipe.cli query "What does the post say about caching?"
#   python -m ragpipe.cli delete --loader-id WebLoader_abc123 --yes
# =============================================================================

"""Command-line interface for ingesting into and querying a ragpipe corpus."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from ragpipe.config.loader import load_config
from ragpipe.config.settings import Settings
from ragpipe.utils.errors import RagPipeError
from ragpipe.utils.logging import configure_logging


def _build_embedding_provider(app_settings: Settings, providers: dict[str, Any]):  # noqa: ANN202
    """Return the configured embedding provider.

    Imports are deferred so only the selected backend's SDK is loaded.
    """
    choice = providers.get("embedding", app_settings.embedding_provider)
    if choice == "openai":
        from ragpipe.providers.embedding.openai_embedding_provider import (
            OpenAIEmbeddingProvider,
        )

        return OpenAIEmbeddingProvider(settings=app_settings)

    from ragpipe.providers.embedding.fastembed_embedding_provider import (
        FastEmbedEmbeddingProvider,
    )

    return FastEmbedEmbeddingProvider(model_name=app_settings.fastembed_model)


def _build_vector_store(app_settings: Settings, providers: dict[str, Any]):  # noqa: ANN202
    choice = providers.get("vector_store", app_settings.vector_store)
    if choice == "memory":
        from ragpipe.providers.vector_store.memory_vector_store import MemoryVectorStore

        return MemoryVectorStore()

    from ragpipe.providers.vector_store.chromadb_provider import ChromaDBProvider

    return ChromaDBProvider(
        persist_directory=app_settings.chromadb_persist_dir,
        collection_name=app_settings.chromadb_collection,
    )


def _build_cache(app_settings: Settings, providers: dict[str, Any]):  # noqa: ANN202
    choice = providers.get("cache", app_settings.cache_backend)
    if choice == "none":
        return None
    if choice == "memory":
        from ragpipe.providers.cache.memory_cache import MemoryCacheProvider

        return MemoryCacheProvider()

    from ragpipe.providers.cache.sqlite_cache import SQLiteCacheProvider

    return SQLiteCacheProvider(db_path=app_settings.cache_db_path)


def _build_model(app_settings: Settings):  # noqa: ANN202
    """Select the generation model.  Priority: Anthropic -> OpenAI."""
    if app_settings.anthropic_api_key:
        from ragpipe.providers.llm.anthropic_provider import AnthropicModel

        return AnthropicModel(settings=app_settings)

    from ragpipe.providers.llm.openai_provider import OpenAIModel

    return OpenAIModel(settings=app_settings)


def _build_reranker(app_settings: Settings, providers: dict[str, Any]):  # noqa: ANN202
    model_name = providers.get("reranker_model", app_settings.reranker_model)
    if not model_name:
        return None

    from ragpipe.providers.reranker.cross_encoder_reranker import CrossEncoderReranker

    return CrossEncoderReranker(model_name=model_name)


def _build_application(app_settings: Settings, config: dict[str, Any]):  # noqa: ANN202
    """Wire every configured collaborator into an (uninitialized) application."""
    from ragpipe.pipeline.builder import RAGApplicationBuilder

    providers = config.get("providers", {})
    builder = (
        RAGApplicationBuilder()
        .set_model(_build_model(app_settings))
        .set_vector_store(_build_vector_store(app_settings, providers))
        .set_embedding_model(_build_embedding_provider(app_settings, providers))
        .apply_config(config)
    )
    cache = _build_cache(app_settings, providers)
    if cache is not None:
        builder.set_cache(cache)
    reranker = _build_reranker(app_settings, providers)
    if reranker is not None:
        builder.set_reranker(reranker)
    return builder.create()


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_text(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    from ragpipe.loaders.text_loader import TextLoader

    if args.file:
        text = Path(args.file).read_text(encoding="utf-8")
    else:
        text = args.text
    if not text:
        print("Error: provide --text or --file", file=sys.stderr)
        return 1

    result = await app.add_loader(TextLoader(text, chunk_size=args.chunk_size))
    _print_add_result(result)
    return 0


async def _handle_url(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    from ragpipe.loaders.web_loader import WebLoader

    print(f"Ingesting URL: {args.url}")
    result = await app.add_loader(WebLoader(args.url, chunk_size=args.chunk_size))
    _print_add_result(result)
    return 0


async def _handle_directory(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    from ragpipe.loaders.directory_loader import DirectoryLoader

    print(f"Ingesting directory: {args.path} (pattern: {args.pattern})")
    result = await app.add_loader(
        DirectoryLoader(args.path, pattern=args.pattern, chunk_size=args.chunk_size)
    )
    _print_add_result(result)
    return 0


async def _handle_query(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    answer = await app.query(args.question, conversation_id=args.conversation_id)
    print(answer.result)
    if answer.sources:
        print("\nSources:")
        for source in answer.sources:
            print(f"  - {source}")
    return 0


async def _handle_count(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    print(f"Vectors stored: {await app.get_embeddings_count()}")
    return 0


async def _handle_index(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    await app.create_vector_index()
    print(f"Vector index ready ({app.dimensions} dimensions)")
    return 0


async def _handle_delete(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    deleted = await app.delete_loader(args.loader_id, are_you_sure=args.yes)
    if not args.yes:
        print("Refusing to delete without --yes.", file=sys.stderr)
        return 1
    print(f"Deleted loader {args.loader_id}: {'ok' if deleted else 'failed'}")
    return 0 if deleted else 1


async def _handle_reset(args: argparse.Namespace, app) -> int:  # noqa: ANN001
    if not await app.delete_all_embeddings(are_you_sure=args.yes):
        print("Refusing to reset without --yes.", file=sys.stderr)
        return 1
    print("Vector store reset.")
    return 0


_HANDLERS = {
    "text": _handle_text,
    "url": _handle_url,
    "directory": _handle_directory,
    "query": _handle_query,
    "count": _handle_count,
    "index": _handle_index,
    "delete": _handle_delete,
    "reset": _handle_reset,
}


def _print_add_result(result) -> None:  # noqa: ANN001
    print("\nIngestion complete:")
    print(f"  Loader ID:     {result.unique_id}")
    print(f"  Entries added: {result.entries_added}")


async def _run(args: argparse.Namespace, app_settings: Settings, config: dict[str, Any]) -> int:
    if args.command == "query" and not app_settings.get_available_llm_providers():
        print(
            "Error: no generation model configured.\n"
            "Set one of:\n"
            "  ANTHROPIC_API_KEY -- for Anthropic\n"
            "  OPENAI_API_KEY    -- for OpenAI or an OpenAI-compatible endpoint\n",
            file=sys.stderr,
        )
        return 1

    try:
        app = _build_application(app_settings, config)
        await app.init()
        return await _HANDLERS[args.command](args, app)
    except RagPipeError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ragpipe CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m ragpipe.cli",
        description="Ingest content into and query a ragpipe corpus.",
    )
    parser.add_argument("--config", default="config/config.yaml", help="YAML config path")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- text --
    text_parser = subparsers.add_parser("text", help="Ingest a string or text file")
    text_source = text_parser.add_mutually_exclusive_group(required=True)
    text_source.add_argument("--text", help="Text to ingest")
    text_source.add_argument("--file", help="Path to a UTF-8 text file")
    text_parser.add_argument("--chunk-size", type=int, default=300, dest="chunk_size")

    # -- url --
    url_parser = subparsers.add_parser("url", help="Ingest a web page")
    url_parser.add_argument("--url", required=True, help="Page URL")
    url_parser.add_argument("--chunk-size", type=int, default=2000, dest="chunk_size")

    # -- directory --
    dir_parser = subparsers.add_parser("directory", help="Ingest files in a directory")
    dir_parser.add_argument("--path", required=True, help="Directory path")
    dir_parser.add_argument("--pattern", default="*.txt", help="Glob pattern (default: *.txt)")
    dir_parser.add_argument("--chunk-size", type=int, default=1000, dest="chunk_size")

    # -- query --
    query_parser = subparsers.add_parser("query", help="Answer a question from the corpus")
    query_parser.add_argument("question", help="The question to ask")
    query_parser.add_argument("--conversation-id", dest="conversation_id", default=None)

    subparsers.add_parser("count", help="Show the number of stored vectors")
    subparsers.add_parser("index", help="Create or ensure the vector index")

    # -- delete --
    delete_parser = subparsers.add_parser("delete", help="Delete one loader's vectors")
    delete_parser.add_argument("--loader-id", required=True, dest="loader_id")
    delete_parser.add_argument("--yes", "-y", action="store_true", help="Confirm deletion")

    # -- reset --
    reset_parser = subparsers.add_parser("reset", help="Delete every stored vector")
    reset_parser.add_argument("--yes", "-y", action="store_true", help="Confirm reset")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse arguments, load settings and dispatch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    config = load_config(args.config, settings=app_settings)
    configure_logging(config.get("logging", {}).get("level", app_settings.log_level))

    exit_code = asyncio.run(_run(args, app_settings, config))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
