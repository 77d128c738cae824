"""
Schemas for safety checks (guardrails).

Check configurations and check results are tagged unions: configs are tagged by
the check name, result payloads by `kind`. Code that consumes them dispatches on
the concrete class and raises TypeError for anything it does not know.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field


class GuardrailName(str, Enum):
    JAILBREAK = "Jailbreak"
    MODERATION = "Moderation"
    CUSTOM_PROMPT_CHECK = "Custom Prompt Check"
    PROMPT_INJECTION = "Prompt Injection Detection"
    PII = "Contains PII"
    NSFW = "NSFW Text"
    URL_FILTER = "URL Filter"
    HALLUCINATION = "Hallucination Detection"


# --- Check configurations ---

class JailbreakConfig(BaseModel):
    name: Literal["Jailbreak"] = "Jailbreak"
    model: str
    confidence_threshold: float = 0.7


class ModerationConfig(BaseModel):
    name: Literal["Moderation"] = "Moderation"
    categories: list[str]


class CustomPromptCheckConfig(BaseModel):
    name: Literal["Custom Prompt Check"] = "Custom Prompt Check"
    model: str
    confidence_threshold: float = 0.7
    system_prompt_details: str


class PromptInjectionConfig(BaseModel):
    name: Literal["Prompt Injection Detection"] = "Prompt Injection Detection"
    model: str
    confidence_threshold: float = 0.7


class PiiConfig(BaseModel):
    name: Literal["Contains PII"] = "Contains PII"
    entities: list[str]
    block: bool = Field(True, description="False = detect and anonymize, do not fail the request.")


class NsfwConfig(BaseModel):
    name: Literal["NSFW Text"] = "NSFW Text"
    model: str
    confidence_threshold: float = 0.7


class UrlFilterConfig(BaseModel):
    name: Literal["URL Filter"] = "URL Filter"
    allowed_domains: list[str] = Field(default_factory=list)


class HallucinationConfig(BaseModel):
    """Checks an answer against the transcripts in a vector store."""

    name: Literal["Hallucination Detection"] = "Hallucination Detection"
    model: str
    confidence_threshold: float = 0.7
    knowledge_source: str


GuardrailConfig = Annotated[
    Union[
        JailbreakConfig,
        ModerationConfig,
        CustomPromptCheckConfig,
        PromptInjectionConfig,
        PiiConfig,
        NsfwConfig,
        UrlFilterConfig,
        HallucinationConfig,
    ],
    Field(discriminator="name"),
]

# Configs that run an LLM classifier and share its verdict shape
LlmCheckConfig = Union[JailbreakConfig, CustomPromptCheckConfig, PromptInjectionConfig, NsfwConfig]


class GuardrailBundle(BaseModel):
    """Ordered set of checks run against one text."""

    guardrails: list[GuardrailConfig] = Field(default_factory=list)

    def find(self, name: GuardrailName) -> GuardrailConfig | None:
        for config in self.guardrails:
            if config.name == name.value:
                return config
        return None


# --- Check results ---

class LlmCheckInfo(BaseModel):
    kind: Literal["llm"] = "llm"
    guardrail_name: str
    flagged: bool
    confidence: float
    threshold: float


class ModerationInfo(BaseModel):
    kind: Literal["moderation"] = "moderation"
    guardrail_name: str = GuardrailName.MODERATION.value
    flagged_categories: list[str] = Field(default_factory=list)


class PiiInfo(BaseModel):
    kind: Literal["pii"] = "pii"
    guardrail_name: str = GuardrailName.PII.value
    detected_entities: dict[str, list[str]] = Field(default_factory=dict)
    anonymized_text: str
    pii_detected: bool = False


class UrlFilterInfo(BaseModel):
    kind: Literal["url_filter"] = "url_filter"
    guardrail_name: str = GuardrailName.URL_FILTER.value
    detected_urls: list[str] = Field(default_factory=list)
    blocked_urls: list[str] = Field(default_factory=list)


class HallucinationInfo(BaseModel):
    kind: Literal["hallucination"] = "hallucination"
    guardrail_name: str = GuardrailName.HALLUCINATION.value
    flagged: bool
    confidence: float
    threshold: float
    reasoning: str = ""
    hallucination_type: str | None = None
    hallucinated_statements: list[str] = Field(default_factory=list)
    verified_statements: list[str] = Field(default_factory=list)


GuardrailInfo = Annotated[
    Union[LlmCheckInfo, ModerationInfo, PiiInfo, UrlFilterInfo, HallucinationInfo],
    Field(discriminator="kind"),
]


class GuardrailResult(BaseModel):
    tripwire_triggered: bool
    info: GuardrailInfo

    @property
    def guardrail_name(self) -> str:
        return self.info.guardrail_name

    @property
    def safe_text(self) -> str | None:
        """Anonymized text this check produced, if any."""
        if isinstance(self.info, PiiInfo):
            return self.info.anonymized_text
        if isinstance(self.info, (LlmCheckInfo, ModerationInfo, UrlFilterInfo, HallucinationInfo)):
            return None
        raise TypeError(f"Unknown guardrail info: {type(self.info).__name__}")


class GuardrailOutcome(BaseModel):
    """Aggregated view over all check results for one input text."""

    results: list[GuardrailResult]
    tripped: bool
    safe_text: str
    fail_output: dict[str, dict[str, Any]]
    message: str = ""

    @property
    def pass_output(self) -> dict[str, str]:
        return {"safe_text": self.safe_text}


class ClassifierVerdict(BaseModel):
    """Structured output of the LLM-based checks."""

    flagged: bool
    confidence: float = Field(..., description="0.0 to 1.0")


class HallucinationVerdict(BaseModel):
    """Structured output of the hallucination check."""

    flagged: bool
    confidence: float = Field(..., description="0.0 to 1.0")
    reasoning: str
    hallucination_type: str | None = Field(
        ..., description="e.g. factual_error, unsupported_claim, fabricated_quote; null when nothing is flagged"
    )
    hallucinated_statements: list[str]
    verified_statements: list[str]
