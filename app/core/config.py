"""
Application configuration (env, settings, constants).

Responsibility: Centralize config loading, environment variables, and app-wide
constants. Keeps the rest of the app decoupled from how config is sourced.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Workflow name (used as a log tag and as request metadata on agent calls)
WORKFLOW_NAME: str = "RF-chatt"

# OpenAI (agent LLM + guardrail classifiers + moderation)
OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "").strip()
AGENT_MODEL: str = os.getenv("AGENT_MODEL", "gpt-4.1").strip() or "gpt-4.1"
GUARDRAIL_MODEL: str = os.getenv("GUARDRAIL_MODEL", "gpt-4.1-mini").strip() or "gpt-4.1-mini"
MODERATION_MODEL: str = (
    os.getenv("MODERATION_MODEL", "omni-moderation-latest").strip() or "omni-moderation-latest"
)

# Hosted vector store with the debate transcripts (file_search tool)
VECTOR_STORE_ID: str = (
    os.getenv("VECTOR_STORE_ID", "vs_691a5156555c8191ab2a810b9a3148dc").strip()
    or "vs_691a5156555c8191ab2a810b9a3148dc"
)

# Agent model settings
AGENT_TEMPERATURE: float = 0.0
AGENT_TOP_P: float = 1.0
AGENT_MAX_TOKENS: int = 2048
AGENT_STORE: bool = os.getenv("AGENT_STORE", "true").strip().lower() not in ("0", "false", "no")

# API timeouts (seconds)
LLM_API_TIMEOUT: float = float(os.getenv("LLM_API_TIMEOUT", "60"))

# "citations": agent returns per-citation source files, enriched from the source map.
# "source_file": agent returns one source file; its URL is looked up by a second agent call.
RESPONSE_MODE: str = os.getenv("RESPONSE_MODE", "citations").strip().lower() or "citations"

# Static source map: source file name -> {"url", "date"}
SOURCE_MAP_PATH: Path = Path(
    os.getenv("SOURCE_MAP_PATH", "").strip()
    or Path(__file__).resolve().parent.parent / "data" / "source_map.json"
)

# Metadata field the URL resolver agent reads from a source file
SOURCE_URL_FIELD: str = os.getenv("SOURCE_URL_FIELD", "url").strip() or "url"

# Guardrails
JAILBREAK_CONFIDENCE_THRESHOLD: float = float(os.getenv("JAILBREAK_CONFIDENCE_THRESHOLD", "0.7"))
TOPIC_CONFIDENCE_THRESHOLD: float = float(os.getenv("TOPIC_CONFIDENCE_THRESHOLD", "0.7"))
PROMPT_INJECTION_CONFIDENCE_THRESHOLD: float = float(
    os.getenv("PROMPT_INJECTION_CONFIDENCE_THRESHOLD", "0.7")
)
PROMPT_INJECTION_ENABLED: bool = os.getenv("PROMPT_INJECTION_ENABLED", "").strip().lower() in ("1", "true", "yes")

MODERATION_CATEGORIES: list[str] = _env_list(
    "MODERATION_CATEGORIES",
    [
        "sexual/minors",
        "hate/threatening",
        "harassment/threatening",
        "self-harm/instructions",
        "violence/graphic",
        "illicit/violent",
    ],
)

TOPIC_PROMPT_DETAILS: str = os.getenv("TOPIC_PROMPT_DETAILS", "").strip() or (
    "You are supposed to answer questions about previous debates in Region Östergötland. "
    "Raise the guardrail if questions aren't focused on what has been said in a particular debate, "
    "citations from specific speakers or parties, arguments raised by specific speakers or parties, "
    "on sources for citations or general assumptions. Follow-up questions and answers from an "
    "earlier response should not raise the guardrail."
)

# PII: "off" (no check), "block" (fail the request), "mask" (anonymize and continue)
PII_MODE: str = os.getenv("PII_MODE", "off").strip().lower() or "off"
PII_ENTITIES: list[str] = _env_list(
    "PII_ENTITIES",
    ["EMAIL_ADDRESS", "PHONE_NUMBER", "SE_PERSONNUMMER", "CREDIT_CARD", "IBAN_CODE", "IP_ADDRESS"],
)

# Output check: verify the agent's answer against the vector store before returning it
HALLUCINATION_CHECK_ENABLED: bool = os.getenv("HALLUCINATION_CHECK_ENABLED", "").strip().lower() in ("1", "true", "yes")
HALLUCINATION_CONFIDENCE_THRESHOLD: float = float(os.getenv("HALLUCINATION_CONFIDENCE_THRESHOLD", "0.7"))

# URL filter: empty list disables the check
URL_FILTER_ALLOWED_DOMAINS: list[str] = _env_list("URL_FILTER_ALLOWED_DOMAINS", [])
