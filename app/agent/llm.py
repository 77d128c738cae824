"""
Agent LLM: OpenAI client construction and structured-output agent runs.

One client is built per process (see app.api.dependencies) and passed to every
service that talks to OpenAI. Agent runs use the Responses API with a pydantic
output type; hosted tools (file_search) run on OpenAI's side.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any

import httpx
from openai import OpenAI
from pydantic import BaseModel

from app.core.config import LLM_API_TIMEOUT, OPENAI_API_KEY, WORKFLOW_NAME
from app.core.errors import ServiceUnavailableError

logger = logging.getLogger(__name__)


def build_openai_client(api_key: str | None = None) -> OpenAI:
    """
    Build the OpenAI client. Fails fast when no API key is configured.
    Retries are disabled: a failed upstream call fails the request.
    """
    key = (api_key if api_key is not None else OPENAI_API_KEY).strip()
    if not key:
        raise ServiceUnavailableError("OPENAI_API_KEY must be set in .env")
    logger.info("[llm] building OpenAI client timeout=%.0fs", LLM_API_TIMEOUT)
    return OpenAI(api_key=key, timeout=httpx.Timeout(LLM_API_TIMEOUT), max_retries=0)


@dataclass
class AgentSpec:
    """A hosted agent: fixed instructions, model, tools and structured output type."""

    name: str
    instructions: str
    model: str
    output_type: type[BaseModel]
    tools: list[dict[str, Any]] = field(default_factory=list)
    temperature: float | None = None
    top_p: float | None = None
    max_output_tokens: int | None = None
    store: bool = True

    def with_instructions(self, instructions: str) -> "AgentSpec":
        return replace(self, instructions=instructions)


@dataclass
class AgentRun:
    output: BaseModel | None
    new_items: list[dict[str, Any]]
    response_id: str = ""


def _transcript_items(response: Any, store: bool) -> list[dict[str, Any]]:
    """Turn response output items into input items for a follow-up call."""
    items: list[dict[str, Any]] = []
    for item in getattr(response, "output", None) or []:
        item_type = getattr(item, "type", "")
        if item_type == "message":
            texts = [
                getattr(part, "text", "")
                for part in (getattr(item, "content", None) or [])
                if getattr(part, "type", "") == "output_text"
            ]
            items.append({"role": "assistant", "content": "".join(texts)})
        elif store and getattr(item, "id", None):
            # Tool calls etc. can only be replayed by reference to the stored item
            items.append({"type": "item_reference", "id": item.id})
    return items


def run_agent(client: OpenAI, spec: AgentSpec, conversation: list[dict[str, Any]]) -> AgentRun:
    """
    Run one agent turn over the conversation. Returns the parsed output (None if the
    model produced none) and the items to append to the transcript.
    """
    logger.info("[llm:run_agent] IN  agent=%s model=%s items=%d tools=%d", spec.name, spec.model, len(conversation), len(spec.tools))
    kwargs: dict[str, Any] = {
        "model": spec.model,
        "instructions": spec.instructions,
        "input": list(conversation),
        "text_format": spec.output_type,
        "store": spec.store,
        "metadata": {"workflow": WORKFLOW_NAME, "agent": spec.name},
    }
    if spec.tools:
        kwargs["tools"] = spec.tools
    if spec.temperature is not None:
        kwargs["temperature"] = spec.temperature
    if spec.top_p is not None:
        kwargs["top_p"] = spec.top_p
    if spec.max_output_tokens is not None:
        kwargs["max_output_tokens"] = spec.max_output_tokens
    response = client.responses.parse(**kwargs)
    output = getattr(response, "output_parsed", None)
    new_items = _transcript_items(response, spec.store)
    logger.info("[llm:run_agent] OUT agent=%s parsed=%s new_items=%d", spec.name, output is not None, len(new_items))
    return AgentRun(output=output, new_items=new_items, response_id=getattr(response, "id", "") or "")
