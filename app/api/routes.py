"""
API route aggregator: register endpoints; no logic — only delegate to handlers.
"""

import logging

from fastapi import APIRouter, Depends

from app.api.dependencies import get_chat_pipeline
from app.api.handlers import handle_chat
from app.schemas.chat import ChatRequest, ChatResponse, ErrorResponse
from app.services.chat_service import ChatPipeline

logger = logging.getLogger(__name__)
router = APIRouter()


# --- System ---

@router.get("/", tags=["system"])
def root():
    return {"status": "RF-chatt backend running"}


@router.get("/health", tags=["system"])
def health():
    return {"ok": True}


# --- Chat ---

@router.post(
    "/api/chat",
    response_model=ChatResponse,
    tags=["chat"],
    summary="Ask a question about past council debates",
    description=(
        "Send a message; receive the answer with citations. 400 on empty input or when a safety check trips "
        "(with guardrail_details), 404 when no relevant answer was found, 429 when rate limited, 500 otherwise."
    ),
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
def post_chat(body: ChatRequest, pipeline: ChatPipeline = Depends(get_chat_pipeline)):
    logger.info("[api:post_chat] IN  message_len=%d", len(body.message or ""))
    return handle_chat(pipeline, body)
