"""
Agent: retrieval-augmented answer and source-URL lookup.

Responsibility: run the hosted agents over the conversation and return their
structured output. Called by the chat pipeline; no HTTP here.
"""

import logging
from typing import Any

import openai
from openai import OpenAI
from pydantic import BaseModel, ValidationError

from app.agent.llm import AgentSpec, run_agent
from app.agent.prompts import (
    CITED_ANSWER_INSTRUCTIONS,
    SOURCE_FILE_ANSWER_INSTRUCTIONS,
    source_url_instructions,
)
from app.agent.tools import file_search_tool
from app.core.config import (
    AGENT_MAX_TOKENS,
    AGENT_MODEL,
    AGENT_STORE,
    AGENT_TEMPERATURE,
    AGENT_TOP_P,
    SOURCE_URL_FIELD,
    VECTOR_STORE_ID,
)
from app.core.errors import AgentOutputError
from app.schemas.agent import CitedAnswer, SourceFileAnswer, SourceUrlLookup

logger = logging.getLogger(__name__)


def answer_agent_spec(mode: str, vector_store_id: str = VECTOR_STORE_ID) -> AgentSpec:
    """The RF agent: file_search over the transcripts, output shape chosen by response mode."""
    if mode == "citations":
        instructions, output_type = CITED_ANSWER_INSTRUCTIONS, CitedAnswer
    elif mode == "source_file":
        instructions, output_type = SOURCE_FILE_ANSWER_INSTRUCTIONS, SourceFileAnswer
    else:
        raise ValueError(f"Unknown response mode: {mode!r}")
    return AgentSpec(
        name="RF-agent",
        instructions=instructions,
        model=AGENT_MODEL,
        output_type=output_type,
        tools=[file_search_tool([vector_store_id])],
        temperature=AGENT_TEMPERATURE,
        top_p=AGENT_TOP_P,
        max_output_tokens=AGENT_MAX_TOKENS,
        store=AGENT_STORE,
    )


def url_agent_spec(vector_store_id: str = VECTOR_STORE_ID) -> AgentSpec:
    """URL lookup agent; instructions are bound per call to one source file."""
    return AgentSpec(
        name="Source-URL-agent",
        instructions="",
        model=AGENT_MODEL,
        output_type=SourceUrlLookup,
        tools=[file_search_tool([vector_store_id])],
        temperature=AGENT_TEMPERATURE,
        store=AGENT_STORE,
    )


class RetrievalAgentInvoker:
    """Single call to the answer agent; extends the transcript with what the agent produced."""

    def __init__(self, client: OpenAI, spec: AgentSpec) -> None:
        self._client = client
        self.spec = spec

    def invoke(self, conversation: list[dict[str, Any]]) -> BaseModel:
        try:
            run = run_agent(self._client, self.spec, conversation)
        except ValidationError as e:
            raise AgentOutputError(f"{self.spec.name} returned malformed output") from e
        if run.output is None:
            raise AgentOutputError(f"{self.spec.name} returned no structured output")
        conversation.extend(run.new_items)
        return run.output


class SourceUrlResolver:
    """
    Looks up the URL stored in a source file's metadata via a second agent call.
    Best effort: any failure gives "" and the answer goes out without a URL.
    """

    def __init__(self, client: OpenAI, spec: AgentSpec, url_field: str = SOURCE_URL_FIELD) -> None:
        self._client = client
        self.spec = spec
        self.url_field = url_field

    def resolve(self, source_file: str, conversation: list[dict[str, Any]]) -> str:
        if not source_file or not source_file.strip():
            return ""
        spec = self.spec.with_instructions(source_url_instructions(source_file, self.url_field))
        logger.info("[agent:resolve_source_url] IN  source_file=%r", source_file)
        try:
            run = run_agent(self._client, spec, conversation)
        except (openai.OpenAIError, ValidationError) as e:
            logger.warning("[agent:resolve_source_url] lookup failed for %r: %s", source_file, e)
            return ""
        conversation.extend(run.new_items)
        url = getattr(run.output, "source_url", None)
        if not isinstance(url, str) or not url.strip():
            logger.warning("[agent:resolve_source_url] no URL for %r", source_file)
            return ""
        logger.info("[agent:resolve_source_url] OUT source_url=%r", url.strip())
        return url.strip()
