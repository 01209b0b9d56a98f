"""
kbchat - API Routes
====================
Thin controllers: validate the body, hand the turn to ``ChatRuntime``,
shape the response.  No business logic or vector-store calls live here.

    POST {CHAT_ENDPOINT}  → run one conversation turn
    GET  /health          → liveness + startup indexing state
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, Request

from kbchat.src.api.schemas import ChatMessage, ChatRequest, ChatResponse, HealthResponse
from kbchat.src.core.runtime import ChatRuntime
from kbchat.src.utils.logger import get_logger

logger = get_logger(__name__)


def build_router(runtime: ChatRuntime, chat_endpoint: str) -> APIRouter:
    """Return a router exposing the chat route and the health check."""
    router = APIRouter()

    @router.post(chat_endpoint, response_model=ChatResponse, response_model_by_alias=True)
    async def chat(body: ChatRequest) -> ChatResponse:
        thread_id = body.thread_id or uuid.uuid4().hex
        logger.info("Request received: thread=%s, %d message(s).", thread_id, len(body.messages))

        try:
            turn = await runtime.respond([m.to_langchain() for m in body.messages])
        except Exception:
            logger.exception("Chat turn failed for thread %s.", thread_id)
            raise HTTPException(status_code=502, detail="The language model request failed.") from None

        return ChatResponse(thread_id=thread_id, message=ChatMessage(role="assistant", content=turn.answer), actions=turn.actions)

    @router.get("/health", response_model=HealthResponse)
    def health(request: Request) -> HealthResponse:
        return HealthResponse(indexing=request.app.state.indexing_status)

    return router
