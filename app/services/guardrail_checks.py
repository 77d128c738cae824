"""
Individual safety checks. Each takes one text and one check config and returns a
GuardrailResult; upstream errors propagate to the caller.

Moderation uses the OpenAI moderation endpoint, the classifier checks use a
small model with structured output, PII and URL filtering are deterministic.
The hallucination check runs on the agent's answer and searches the transcripts.
"""

import logging
import re
from urllib.parse import urlparse

from openai import OpenAI

from app.agent.llm import AgentSpec, run_agent
from app.agent.prompts import (
    HALLUCINATION_PROMPT,
    JAILBREAK_PROMPT,
    NSFW_PROMPT,
    PROMPT_INJECTION_PROMPT,
    custom_prompt_check_prompt,
)
from app.agent.tools import file_search_tool
from app.core.config import MODERATION_MODEL
from app.core.errors import AgentOutputError
from app.schemas.guardrails import (
    ClassifierVerdict,
    CustomPromptCheckConfig,
    GuardrailConfig,
    GuardrailResult,
    HallucinationConfig,
    HallucinationInfo,
    HallucinationVerdict,
    JailbreakConfig,
    LlmCheckConfig,
    LlmCheckInfo,
    ModerationConfig,
    ModerationInfo,
    NsfwConfig,
    PiiConfig,
    PiiInfo,
    PromptInjectionConfig,
    UrlFilterConfig,
    UrlFilterInfo,
)
from app.services.pii import detect_pii

logger = logging.getLogger(__name__)

_URL_RE = re.compile(r"\b(?:https?://|www\.)[^\s<>\"']+", re.IGNORECASE)


def _classifier_prompt(config: LlmCheckConfig) -> str:
    if isinstance(config, JailbreakConfig):
        return JAILBREAK_PROMPT
    if isinstance(config, PromptInjectionConfig):
        return PROMPT_INJECTION_PROMPT
    if isinstance(config, NsfwConfig):
        return NSFW_PROMPT
    if isinstance(config, CustomPromptCheckConfig):
        return custom_prompt_check_prompt(config.system_prompt_details)
    raise TypeError(f"Not a classifier check: {type(config).__name__}")


def llm_check(client: OpenAI, text: str, config: LlmCheckConfig) -> GuardrailResult:
    """Ask a classifier model for a verdict; trips when flagged with confidence >= threshold."""
    spec = AgentSpec(
        name=config.name,
        instructions=_classifier_prompt(config),
        model=config.model,
        output_type=ClassifierVerdict,
        temperature=0.0,
        store=False,
    )
    run = run_agent(client, spec, [{"role": "user", "content": text}])
    verdict = run.output
    if not isinstance(verdict, ClassifierVerdict):
        raise AgentOutputError(f"{config.name} check returned no verdict")
    tripped = verdict.flagged and verdict.confidence >= config.confidence_threshold
    logger.info("[guardrail:%s] flagged=%s confidence=%.2f tripped=%s", config.name, verdict.flagged, verdict.confidence, tripped)
    return GuardrailResult(
        tripwire_triggered=tripped,
        info=LlmCheckInfo(
            guardrail_name=config.name,
            flagged=verdict.flagged,
            confidence=verdict.confidence,
            threshold=config.confidence_threshold,
        ),
    )


def moderation_check(client: OpenAI, text: str, config: ModerationConfig) -> GuardrailResult:
    """Trips when the moderation endpoint flags any of the configured categories."""
    response = client.moderations.create(model=MODERATION_MODEL, input=text)
    result = response.results[0]
    flags = result.categories.model_dump(by_alias=True)
    flagged = [category for category in config.categories if flags.get(category)]
    logger.info("[guardrail:Moderation] flagged_categories=%s", flagged)
    return GuardrailResult(
        tripwire_triggered=bool(flagged),
        info=ModerationInfo(flagged_categories=flagged),
    )


def pii_check(text: str, config: PiiConfig) -> GuardrailResult:
    """Detects PII; trips only in blocking mode. Always returns the anonymized text."""
    detected, anonymized = detect_pii(text, config.entities)
    return GuardrailResult(
        tripwire_triggered=bool(detected) and config.block,
        info=PiiInfo(detected_entities=detected, anonymized_text=anonymized, pii_detected=bool(detected)),
    )


def _domain_allowed(url: str, allowed_domains: list[str]) -> bool:
    host = (urlparse(url if "://" in url else f"http://{url}").hostname or "").lower()
    for domain in allowed_domains:
        domain = domain.lower().lstrip(".")
        if host == domain or host.endswith("." + domain):
            return True
    return False


def url_filter_check(text: str, config: UrlFilterConfig) -> GuardrailResult:
    """Trips when the text contains a URL outside the allowed domains."""
    urls = [u.rstrip(".,;:!?)") for u in _URL_RE.findall(text)]
    blocked = [u for u in urls if not _domain_allowed(u, config.allowed_domains)]
    return GuardrailResult(
        tripwire_triggered=bool(blocked),
        info=UrlFilterInfo(detected_urls=urls, blocked_urls=blocked),
    )


def hallucination_check(client: OpenAI, text: str, config: HallucinationConfig) -> GuardrailResult:
    """Verify an answer against the knowledge source; trips like the classifier checks."""
    spec = AgentSpec(
        name=config.name,
        instructions=HALLUCINATION_PROMPT,
        model=config.model,
        output_type=HallucinationVerdict,
        tools=[file_search_tool([config.knowledge_source])],
        temperature=0.0,
        store=False,
    )
    run = run_agent(client, spec, [{"role": "user", "content": text}])
    verdict = run.output
    if not isinstance(verdict, HallucinationVerdict):
        raise AgentOutputError(f"{config.name} check returned no verdict")
    tripped = verdict.flagged and verdict.confidence >= config.confidence_threshold
    logger.info(
        "[guardrail:%s] flagged=%s confidence=%.2f hallucinated=%d tripped=%s",
        config.name,
        verdict.flagged,
        verdict.confidence,
        len(verdict.hallucinated_statements),
        tripped,
    )
    return GuardrailResult(
        tripwire_triggered=tripped,
        info=HallucinationInfo(
            flagged=verdict.flagged,
            confidence=verdict.confidence,
            threshold=config.confidence_threshold,
            reasoning=verdict.reasoning,
            hallucination_type=verdict.hallucination_type,
            hallucinated_statements=verdict.hallucinated_statements,
            verified_statements=verdict.verified_statements,
        ),
    )


def run_check(client: OpenAI, text: str, config: GuardrailConfig) -> GuardrailResult:
    """Dispatch one check by its config type."""
    if isinstance(config, HallucinationConfig):
        return hallucination_check(client, text, config)
    if isinstance(config, ModerationConfig):
        return moderation_check(client, text, config)
    if isinstance(config, PiiConfig):
        return pii_check(text, config)
    if isinstance(config, UrlFilterConfig):
        return url_filter_check(text, config)
    if isinstance(config, (JailbreakConfig, CustomPromptCheckConfig, PromptInjectionConfig, NsfwConfig)):
        return llm_check(client, text, config)
    raise TypeError(f"Unknown guardrail config: {type(config).__name__}")
