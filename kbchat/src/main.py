"""
kbchat - Application Entry Point
=================================
FastAPI application factory plus the ``python -m kbchat.src.main``
server entry point.

Startup sequence
----------------
1. Load ``Settings``: missing credentials stop the process (exit 1)
   before anything is served.
2. Build the shared Pinecone client, the ``KnowledgeBaseIndex``, the
   hosted embedder, the retrieval action and the ``ChatRuntime``.
3. On app start, launch the ``IndexingPipeline`` as one detached
   background task.  Requests are accepted immediately; retrieval may
   see an incomplete index until the task finishes.  If the task fails
   (after the provisioner's own retries) the process exits with status 1.

Run:
    python -m kbchat.src.main
    uvicorn kbchat.src.main:create_app --factory
"""

from __future__ import annotations

import asyncio
import os
import sys
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from pydantic import ValidationError

from kbchat.config.settings import Settings, get_settings
from kbchat.data.posts import POSTS
from kbchat.src.api.routes import build_router
from kbchat.src.core.embedder import PineconeEmbedder
from kbchat.src.core.indexer import IndexingPipeline
from kbchat.src.core.retrieval import KnowledgeBaseRetriever
from kbchat.src.core.runtime import ChatRuntime, build_chat_model
from kbchat.src.database.vector_store import KnowledgeBaseIndex, get_pinecone_client
from kbchat.src.utils.logger import get_logger, mask_secret

logger = get_logger(__name__)


def _terminate_process() -> None:
    """Default failure hook for startup indexing: hard exit with status 1."""
    logger.critical("Startup indexing failed; terminating process.")
    os._exit(1)


async def run_startup_indexing(app: FastAPI, pipeline: IndexingPipeline, on_failure: Callable[[], None]) -> None:
    """
    Run *pipeline* in a worker thread and record its state on ``app.state``.

    Any exception is logged with its traceback and then handed to
    *on_failure*; the task itself never re-raises.
    """
    app.state.indexing_status = "running"
    try:
        summary = await asyncio.to_thread(pipeline.run)
    except Exception:
        app.state.indexing_status = "failed"
        logger.exception("Error initializing the knowledge base index.")
        on_failure()
        return

    app.state.indexing_status = "done"
    logger.info("Knowledge base ready: %s", summary)


def create_app(settings: Settings | None = None, *, runtime: ChatRuntime | None = None, pipeline: IndexingPipeline | None = None, on_index_failure: Callable[[], None] | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Parameters
    ----------
    settings
        Defaults to ``get_settings()``; raises ``ValidationError`` when
        required variables are missing.
    runtime, pipeline
        Pre-built collaborators (tests inject fakes).  When omitted they
        are wired from *settings* against Pinecone and Azure OpenAI.
    on_index_failure
        Called if startup indexing fails.  Defaults to terminating the
        process.
    """
    settings = settings or get_settings()
    on_failure = on_index_failure or _terminate_process

    if runtime is None or pipeline is None:
        client = get_pinecone_client(settings)
        store = KnowledgeBaseIndex(settings, client)
        embedder = PineconeEmbedder.from_settings(settings, client)

        if pipeline is None:
            pipeline = IndexingPipeline(store, embedder, POSTS, dimension=settings.PINECONE_DIMENSION)
        if runtime is None:
            retriever = KnowledgeBaseRetriever(store, embedder, top_k=settings.SEARCH_TOP_K)
            runtime = ChatRuntime(build_chat_model(settings), [retriever.as_tool()], max_action_rounds=settings.MAX_ACTION_ROUNDS)

    startup_pipeline = pipeline

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.INDEX_ON_STARTUP:
            # Detached: the reference on app.state keeps the task alive; it is never cancelled.
            app.state.indexing_task = asyncio.create_task(run_startup_indexing(app, startup_pipeline, on_failure))
        yield

    app = FastAPI(title="kbchat", description="Chat assistant backed by a vector-search knowledge base.", version="0.1.0", lifespan=lifespan)
    app.state.indexing_status = "pending" if settings.INDEX_ON_STARTUP else "disabled"
    app.include_router(build_router(runtime, settings.CHAT_ENDPOINT))

    logger.info("App ready: POST %s (actions: %s)", settings.CHAT_ENDPOINT, ", ".join(runtime.action_names) or "none")
    return app


def main() -> None:
    try:
        settings = get_settings()
    except ValidationError as exc:
        logger.critical("Missing required API keys or configuration; check your .env file:\n%s", exc)
        sys.exit(1)

    logger.info("Azure OpenAI endpoint: %s", settings.AZURE_OPENAI_ENDPOINT)
    logger.info("Azure OpenAI deployment: %s (api-version %s)", settings.AZURE_OPENAI_DEPLOYMENT_NAME, settings.AZURE_OPENAI_API_VERSION)
    logger.info("Azure OpenAI key: %s", mask_secret(settings.AZURE_OPENAI_API_KEY.get_secret_value()))
    logger.info("Pinecone key: %s, index '%s/%s'", mask_secret(settings.PINECONE_API_KEY.get_secret_value()), settings.PINECONE_INDEX_NAME, settings.PINECONE_NAMESPACE)

    uvicorn.run(create_app(settings), host=settings.HOST, port=settings.PORT, log_level="debug" if settings.ENV == "dev" else "warning")


if __name__ == "__main__":
    main()
