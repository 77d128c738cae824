"""
Safety filter adapter: run the configured checks on one text and aggregate them.

Responsibility: one pass/fail decision per input, the anonymized text if a check
produced one, a structured per-check report, and the user-facing explanation.
Never mutates the conversation (see pii_scrubber for that).
"""

import logging
from typing import Any

from openai import OpenAI

from app.core.config import (
    GUARDRAIL_MODEL,
    HALLUCINATION_CHECK_ENABLED,
    HALLUCINATION_CONFIDENCE_THRESHOLD,
    JAILBREAK_CONFIDENCE_THRESHOLD,
    MODERATION_CATEGORIES,
    PII_ENTITIES,
    PII_MODE,
    PROMPT_INJECTION_CONFIDENCE_THRESHOLD,
    PROMPT_INJECTION_ENABLED,
    TOPIC_CONFIDENCE_THRESHOLD,
    TOPIC_PROMPT_DETAILS,
    URL_FILTER_ALLOWED_DOMAINS,
    VECTOR_STORE_ID,
)
from app.schemas.guardrails import (
    CustomPromptCheckConfig,
    GuardrailBundle,
    GuardrailName,
    GuardrailOutcome,
    GuardrailResult,
    HallucinationConfig,
    HallucinationInfo,
    JailbreakConfig,
    LlmCheckInfo,
    ModerationConfig,
    ModerationInfo,
    PiiConfig,
    PiiInfo,
    PromptInjectionConfig,
    UrlFilterConfig,
    UrlFilterInfo,
)
from app.services.guardrail_checks import run_check

logger = logging.getLogger(__name__)

# Report key per check, in the order explanations are concatenated
REPORT_KEYS: dict[str, str] = {
    GuardrailName.JAILBREAK.value: "jailbreak",
    GuardrailName.MODERATION.value: "moderation",
    GuardrailName.CUSTOM_PROMPT_CHECK.value: "custom_prompt_check",
    GuardrailName.PROMPT_INJECTION.value: "prompt_injection",
    GuardrailName.PII.value: "pii",
    GuardrailName.NSFW.value: "nsfw",
    GuardrailName.URL_FILTER.value: "url_filter",
    GuardrailName.HALLUCINATION.value: "hallucination",
}

GUARDRAIL_MESSAGES: dict[str, str] = {
    "jailbreak": "Frågan ser ut som ett försök att kringgå assistentens instruktioner och kan inte besvaras.",
    "moderation": "Frågan innehåller innehåll som inte är tillåtet.",
    "custom_prompt_check": (
        "Jag kan bara svara på frågor om vad som sagts i debatter i regionfullmäktige i Region Östergötland."
    ),
    "prompt_injection": "Frågan innehåller instruktioner som försöker styra om assistenten.",
    "pii": "Frågan innehåller personuppgifter. Ta bort dem och försök igen.",
    "nsfw": "Frågan innehåller olämpligt innehåll.",
    "url_filter": "Frågan innehåller länkar som inte är tillåtna.",
    "hallucination": "Svaret kunde inte styrkas av debattutskrifterna och visas därför inte. Försök formulera om frågan.",
}


def default_guardrail_bundle() -> GuardrailBundle:
    """Checks configured from the environment."""
    guardrails: list[Any] = [
        JailbreakConfig(model=GUARDRAIL_MODEL, confidence_threshold=JAILBREAK_CONFIDENCE_THRESHOLD),
        ModerationConfig(categories=MODERATION_CATEGORIES),
        CustomPromptCheckConfig(
            model=GUARDRAIL_MODEL,
            confidence_threshold=TOPIC_CONFIDENCE_THRESHOLD,
            system_prompt_details=TOPIC_PROMPT_DETAILS,
        ),
    ]
    if PROMPT_INJECTION_ENABLED:
        guardrails.append(
            PromptInjectionConfig(model=GUARDRAIL_MODEL, confidence_threshold=PROMPT_INJECTION_CONFIDENCE_THRESHOLD)
        )
    if PII_MODE in ("block", "mask"):
        guardrails.append(PiiConfig(entities=PII_ENTITIES, block=PII_MODE == "block"))
    if URL_FILTER_ALLOWED_DOMAINS:
        guardrails.append(UrlFilterConfig(allowed_domains=URL_FILTER_ALLOWED_DOMAINS))
    return GuardrailBundle(guardrails=guardrails)


def default_output_guardrail_bundle() -> GuardrailBundle:
    """Checks run on the agent's answer; empty unless HALLUCINATION_CHECK_ENABLED."""
    if not HALLUCINATION_CHECK_ENABLED:
        return GuardrailBundle()
    return GuardrailBundle(
        guardrails=[
            HallucinationConfig(
                model=GUARDRAIL_MODEL,
                confidence_threshold=HALLUCINATION_CONFIDENCE_THRESHOLD,
                knowledge_source=VECTOR_STORE_ID,
            )
        ]
    )


def has_tripwire(results: list[GuardrailResult]) -> bool:
    return any(r.tripwire_triggered for r in results)


def safe_text_from(results: list[GuardrailResult], fallback: str) -> str:
    """First anonymized text any check produced, else the fallback."""
    for result in results:
        text = result.safe_text
        if text is not None:
            return text
    return fallback


def build_fail_output(results: list[GuardrailResult]) -> dict[str, dict[str, Any]]:
    """Per-check report, keyed and ordered by REPORT_KEYS. Checks that did not run report failed=False."""
    report: dict[str, dict[str, Any]] = {key: {"failed": False} for key in REPORT_KEYS.values()}
    for result in results:
        key = REPORT_KEYS.get(result.guardrail_name)
        if key is None:
            raise TypeError(f"Unknown guardrail: {result.guardrail_name}")
        entry: dict[str, Any] = {"failed": result.tripwire_triggered}
        info = result.info
        if isinstance(info, LlmCheckInfo):
            entry["confidence"] = info.confidence
        elif isinstance(info, ModerationInfo):
            entry["flagged_categories"] = list(info.flagged_categories)
        elif isinstance(info, PiiInfo):
            entry["detected_counts"] = [f"{k}:{len(v)}" for k, v in info.detected_entities.items()]
            # Found and anonymized without failing the request
            entry["masked"] = info.pii_detected and not result.tripwire_triggered
        elif isinstance(info, UrlFilterInfo):
            entry["blocked_urls"] = list(info.blocked_urls)
        elif isinstance(info, HallucinationInfo):
            entry["confidence"] = info.confidence
            entry["reasoning"] = info.reasoning
            entry["hallucination_type"] = info.hallucination_type
            entry["hallucinated_statements"] = list(info.hallucinated_statements)
            entry["verified_statements"] = list(info.verified_statements)
        else:
            raise TypeError(f"Unknown guardrail info: {type(info).__name__}")
        report[key] = entry
    return report


def build_fail_message(fail_output: dict[str, dict[str, Any]]) -> str:
    """User-facing explanation: the tripped checks' messages, in REPORT_KEYS order."""
    parts: list[str] = []
    for key in REPORT_KEYS.values():
        entry = fail_output.get(key) or {}
        if entry.get("failed"):
            parts.append(GUARDRAIL_MESSAGES[key])
    return " ".join(parts)


class GuardrailService:
    """Runs safety checks through the shared OpenAI client."""

    def __init__(self, client: OpenAI) -> None:
        self._client = client

    def run(self, text: str, bundle: GuardrailBundle) -> list[GuardrailResult]:
        """Run every check in bundle order. Raises ValueError for empty text."""
        if not text or not text.strip():
            raise ValueError("text is required")
        logger.info("[guardrails:run] IN  text_len=%d checks=%s", len(text), [g.name for g in bundle.guardrails])
        results = [run_check(self._client, text, config) for config in bundle.guardrails]
        logger.info(
            "[guardrails:run] OUT tripped=%s",
            [r.guardrail_name for r in results if r.tripwire_triggered],
        )
        return results

    def evaluate(self, text: str, bundle: GuardrailBundle) -> GuardrailOutcome:
        """Run the checks and aggregate them into one outcome."""
        results = self.run(text, bundle)
        tripped = has_tripwire(results)
        fail_output = build_fail_output(results)
        return GuardrailOutcome(
            results=results,
            tripped=tripped,
            safe_text=safe_text_from(results, text),
            fail_output=fail_output,
            message=build_fail_message(fail_output) if tripped else "",
        )
