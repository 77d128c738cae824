"""
Application errors for clean API error handling.

Services raise these; app.api.handlers maps them to HTTP status codes so no
service module needs FastAPI types.
"""

from typing import Any


class ServiceUnavailableError(Exception):
    """Raised when a required service (e.g. the OpenAI client) is misconfigured, such as a missing API key."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class GuardrailTrippedError(Exception):
    """Raised when one or more safety checks tripped for the user's input. No agent call is made."""

    def __init__(self, message: str, details: dict[str, Any]) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class AgentOutputError(Exception):
    """Raised when the hosted agent returns no usable structured output."""


class EmptyAnswerError(Exception):
    """Raised when the agent answered but the answer text is empty."""
