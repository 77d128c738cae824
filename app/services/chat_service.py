"""
Chat pipeline: one stateless request from user message to ChatResponse.

Dependencies are passed in explicitly; build_chat_pipeline() wires the real
ones from config around a single OpenAI client.
"""

import logging

from openai import OpenAI

from app.agent.graph import STAGE_BLOCKED, ChatState, WorkflowDeps, build_graph
from app.agent.llm import build_openai_client
from app.core.config import RESPONSE_MODE, WORKFLOW_NAME
from app.core.errors import GuardrailTrippedError
from app.core.source_map import SourceEntry, load_source_map
from app.schemas.chat import ChatResponse
from app.schemas.guardrails import GuardrailBundle
from app.services.agent_service import (
    RetrievalAgentInvoker,
    SourceUrlResolver,
    answer_agent_spec,
    url_agent_spec,
)
from app.services.guardrail_service import (
    GuardrailService,
    default_guardrail_bundle,
    default_output_guardrail_bundle,
)

logger = logging.getLogger(__name__)


class ChatPipeline:
    def __init__(
        self,
        guardrail_service: GuardrailService,
        guardrail_bundle: GuardrailBundle,
        invoker: RetrievalAgentInvoker,
        source_map: dict[str, SourceEntry],
        resolver: SourceUrlResolver | None = None,
        output_guardrail_bundle: GuardrailBundle | None = None,
    ) -> None:
        self.deps = WorkflowDeps(
            guardrail_service=guardrail_service,
            guardrail_bundle=guardrail_bundle,
            invoker=invoker,
            resolver=resolver,
            source_map=source_map,
            output_guardrail_bundle=output_guardrail_bundle or GuardrailBundle(),
        )
        self._graph = build_graph(self.deps)

    def run(self, message: str) -> ChatResponse:
        """
        Answer one message. Raises ValueError for empty input, GuardrailTrippedError when a
        safety check trips, AgentOutputError / EmptyAnswerError when the agent gives nothing usable.
        OpenAI errors propagate.
        """
        if not isinstance(message, str) or not message.strip():
            raise ValueError("message is required")
        logger.info("[%s:run] START message_len=%d", WORKFLOW_NAME, len(message))
        initial: ChatState = {
            "workflow": {"input_as_text": message},
            "conversation": [{"role": "user", "content": [{"type": "input_text", "text": message}]}],
            "source_url": "",
            "stage": "received",
        }
        final = self._graph.invoke(initial)
        if final.get("stage") == STAGE_BLOCKED:
            # Output checks only run after the input checks passed
            outcome = final.get("output_guardrails") or final["guardrails"]
            logger.info("[%s:run] END blocked message=%r", WORKFLOW_NAME, outcome.message)
            raise GuardrailTrippedError(outcome.message, outcome.fail_output)
        response = final["response"]
        logger.info("[%s:run] END answer_len=%d citations=%d", WORKFLOW_NAME, len(response.output_text), len(response.citations))
        return response


def build_chat_pipeline(client: OpenAI | None = None, mode: str = RESPONSE_MODE) -> ChatPipeline:
    """Wire the real services. Raises ServiceUnavailableError when OPENAI_API_KEY is missing."""
    client = client if client is not None else build_openai_client()
    resolver = SourceUrlResolver(client, url_agent_spec()) if mode == "source_file" else None
    return ChatPipeline(
        guardrail_service=GuardrailService(client),
        guardrail_bundle=default_guardrail_bundle(),
        invoker=RetrievalAgentInvoker(client, answer_agent_spec(mode)),
        source_map=load_source_map(),
        resolver=resolver,
        output_guardrail_bundle=default_output_guardrail_bundle(),
    )
