"""
LangGraph chat workflow: guardrails → (blocked: stop) → answer → [output_guardrails → (blocked: stop)]
→ (source pending: resolve URL) → normalize.

Orchestration only; every step is one or more awaited-to-completion calls to
OpenAI. The answer step leaves the request either "answered, URL pending" (a
source file still needs its URL) or ready to normalize. Output checks, when
configured, run on the answer text and keep that stage unless they trip.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Literal, TypedDict

from langgraph.graph import END, StateGraph

from app.core.source_map import SourceEntry
from app.schemas.agent import CitedAnswer, SourceFileAnswer
from app.schemas.chat import ChatResponse
from app.schemas.guardrails import GuardrailBundle, GuardrailOutcome
from app.services import pii_scrubber
from app.services.agent_service import RetrievalAgentInvoker, SourceUrlResolver
from app.services.guardrail_service import GuardrailService
from app.services.response_normalizer import normalize_cited_answer, normalize_source_file_answer

logger = logging.getLogger(__name__)

STAGE_BLOCKED = "blocked"
STAGE_URL_PENDING = "answered_url_pending"
STAGE_COMPLETE = "complete"


class ChatState(TypedDict, total=False):
    workflow: dict  # {"input_as_text": str}
    conversation: list  # Responses API input items
    guardrails: GuardrailOutcome
    output_guardrails: GuardrailOutcome
    agent_output: Any
    source_url: str
    stage: str
    response: ChatResponse


@dataclass
class WorkflowDeps:
    guardrail_service: GuardrailService
    guardrail_bundle: GuardrailBundle
    invoker: RetrievalAgentInvoker
    resolver: SourceUrlResolver | None
    source_map: dict[str, SourceEntry]
    output_guardrail_bundle: GuardrailBundle = field(default_factory=GuardrailBundle)


def _route_after_guardrails(state: ChatState) -> Literal["answer", "__end__"]:
    blocked = state.get("stage") == STAGE_BLOCKED
    logger.info("[graph:route_after_guardrails] blocked=%s", blocked)
    return END if blocked else "answer"


def _route_by_stage(state: ChatState) -> Literal["resolve_source_url", "normalize"]:
    next_node = "resolve_source_url" if state.get("stage") == STAGE_URL_PENDING else "normalize"
    logger.info("[graph:route_by_stage] stage=%s -> %s", state.get("stage"), next_node)
    return next_node


def _route_after_output_guardrails(state: ChatState) -> Literal["resolve_source_url", "normalize", "__end__"]:
    if state.get("stage") == STAGE_BLOCKED:
        logger.info("[graph:route_after_output_guardrails] blocked=True")
        return END
    return _route_by_stage(state)


def build_graph(deps: WorkflowDeps):
    """Build and compile the chat workflow over the given dependencies."""

    def _guardrails(state: ChatState) -> dict:
        workflow = state["workflow"]
        conversation = state["conversation"]
        text = workflow["input_as_text"]
        logger.info("[graph:guardrails] IN  text_len=%d", len(text))
        outcome = deps.guardrail_service.evaluate(text, deps.guardrail_bundle)
        # Checks above saw the raw text; masking rewrites what the agent will see
        pii_scrubber.scrub(deps.guardrail_service, deps.guardrail_bundle, conversation, workflow)
        stage = STAGE_BLOCKED if outcome.tripped else "checked"
        logger.info("[graph:guardrails] OUT tripped=%s", outcome.tripped)
        return {"guardrails": outcome, "stage": stage, "workflow": workflow, "conversation": conversation}

    def _answer(state: ChatState) -> dict:
        conversation = state["conversation"]
        output = deps.invoker.invoke(conversation)
        stage = STAGE_COMPLETE
        if (
            isinstance(output, SourceFileAnswer)
            and deps.resolver is not None
            and output.source_file.strip()
            and output.output_text.strip()
        ):
            stage = STAGE_URL_PENDING
        logger.info("[graph:answer] OUT output_type=%s stage=%s", type(output).__name__, stage)
        return {"agent_output": output, "stage": stage, "conversation": conversation}

    def _route_after_answer(state: ChatState) -> Literal["output_guardrails", "resolve_source_url", "normalize"]:
        # Empty answers skip the checks and fail in normalize
        if deps.output_guardrail_bundle.guardrails and state["agent_output"].output_text.strip():
            return "output_guardrails"
        return _route_by_stage(state)

    def _output_guardrails(state: ChatState) -> dict:
        text = state["agent_output"].output_text
        logger.info("[graph:output_guardrails] IN  text_len=%d", len(text))
        outcome = deps.guardrail_service.evaluate(text, deps.output_guardrail_bundle)
        stage = STAGE_BLOCKED if outcome.tripped else state["stage"]
        logger.info("[graph:output_guardrails] OUT tripped=%s", outcome.tripped)
        return {"output_guardrails": outcome, "stage": stage}

    def _resolve_source_url(state: ChatState) -> dict:
        output = state["agent_output"]
        conversation = state["conversation"]
        url = deps.resolver.resolve(output.source_file, conversation) if deps.resolver else ""
        return {"source_url": url, "stage": STAGE_COMPLETE, "conversation": conversation}

    def _normalize(state: ChatState) -> dict:
        output = state["agent_output"]
        if isinstance(output, CitedAnswer):
            response = normalize_cited_answer(output, deps.source_map)
        elif isinstance(output, SourceFileAnswer):
            response = normalize_source_file_answer(output, state.get("source_url") or "")
        else:
            raise TypeError(f"Unknown agent output: {type(output).__name__}")
        logger.info("[graph:normalize] OUT citations=%d source_url=%r", len(response.citations), response.source_url)
        return {"response": response, "stage": STAGE_COMPLETE}

    graph = StateGraph(ChatState)

    graph.add_node("guardrails", _guardrails)
    graph.add_node("answer", _answer)
    graph.add_node("output_guardrails", _output_guardrails)
    graph.add_node("resolve_source_url", _resolve_source_url)
    graph.add_node("normalize", _normalize)

    graph.set_entry_point("guardrails")
    graph.add_conditional_edges("guardrails", _route_after_guardrails)
    graph.add_conditional_edges("answer", _route_after_answer)
    graph.add_conditional_edges("output_guardrails", _route_after_output_guardrails)
    graph.add_edge("resolve_source_url", "normalize")
    graph.add_edge("normalize", END)

    return graph.compile()
