"""
PII scrubber: anonymize the conversation before it reaches the agent.

Only active when the PII check is configured as non-blocking. Rewrites text in
place with whatever anonymized text the check returns; text where nothing was
detected passes through unchanged.
"""

import logging
from typing import Any

from app.schemas.guardrails import GuardrailBundle, GuardrailName, PiiConfig
from app.services.guardrail_service import GuardrailService, safe_text_from

logger = logging.getLogger(__name__)

WORKFLOW_INPUT_KEYS: tuple[str, ...] = ("input_as_text", "input_text")


def masking_bundle(bundle: GuardrailBundle) -> GuardrailBundle | None:
    """PII-only bundle when PII is configured non-blocking, else None."""
    config = bundle.find(GuardrailName.PII)
    if isinstance(config, PiiConfig) and not config.block:
        return GuardrailBundle(guardrails=[config])
    return None


def scrub_conversation_history(
    service: GuardrailService, history: list[dict[str, Any]], pii_only: GuardrailBundle
) -> None:
    """Anonymize every input_text part of every message."""
    scrubbed = 0
    for message in history:
        content = message.get("content")
        if not isinstance(content, list):
            continue
        for part in content:
            if not isinstance(part, dict) or part.get("type") != "input_text":
                continue
            text = part.get("text")
            if not isinstance(text, str) or not text.strip():
                continue
            results = service.run(text, pii_only)
            part["text"] = safe_text_from(results, text)
            scrubbed += part["text"] != text
    logger.info("[pii_scrubber:history] messages=%d parts_changed=%d", len(history), scrubbed)


def scrub_workflow_input(
    service: GuardrailService, workflow: dict[str, Any], input_key: str, pii_only: GuardrailBundle
) -> None:
    value = workflow.get(input_key)
    if not isinstance(value, str) or not value.strip():
        return
    results = service.run(value, pii_only)
    workflow[input_key] = safe_text_from(results, value)


def scrub(
    service: GuardrailService,
    bundle: GuardrailBundle,
    history: list[dict[str, Any]],
    workflow: dict[str, Any],
) -> bool:
    """Scrub history and workflow inputs if PII masking is configured. Returns True if it ran."""
    pii_only = masking_bundle(bundle)
    if pii_only is None:
        return False
    scrub_conversation_history(service, history, pii_only)
    for key in WORKFLOW_INPUT_KEYS:
        scrub_workflow_input(service, workflow, key, pii_only)
    return True
