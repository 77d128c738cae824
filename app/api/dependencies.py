"""
FastAPI dependencies. The chat pipeline (and its one OpenAI client) is built once
per process; tests replace it via app.dependency_overrides.
"""

from functools import lru_cache

from app.services.chat_service import ChatPipeline, build_chat_pipeline


@lru_cache(maxsize=1)
def get_chat_pipeline() -> ChatPipeline:
    return build_chat_pipeline()
