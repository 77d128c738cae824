"""
API handlers: call the chat pipeline and map results/errors to HTTP.

Responsibility: Bridge HTTP types and services. Exception-to-HTTP mapping lives
here so services stay free of FastAPI types. No raw exception text, stack trace
or upstream identifier reaches the client.
"""

import logging

import openai
from fastapi.responses import JSONResponse

from app.core.errors import (
    AgentOutputError,
    EmptyAnswerError,
    GuardrailTrippedError,
    ServiceUnavailableError,
)
from app.schemas.chat import ChatRequest, ChatResponse, ErrorResponse
from app.services.chat_service import ChatPipeline

logger = logging.getLogger(__name__)

MSG_EMPTY_MESSAGE = "Meddelandet får inte vara tomt."
MSG_NO_ANSWER = "Jag hittade inget relevant svar. Försök att formulera om din fråga."
MSG_RATE_LIMITED = "För många förfrågningar just nu. Försök igen om en stund."
MSG_MISCONFIGURED = "Tjänsten är inte korrekt konfigurerad. Kontakta administratören."
MSG_INTERNAL = "Något gick fel. Försök igen senare."


def error_response(status_code: int, message: str, guardrail_details: dict | None = None) -> JSONResponse:
    body = ErrorResponse(message=message, guardrail_details=guardrail_details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def handle_chat(pipeline: ChatPipeline, body: ChatRequest) -> ChatResponse | JSONResponse:
    """Run the pipeline for one message; every failure becomes an error response."""
    message = body.message or ""
    if not message.strip():
        return error_response(400, MSG_EMPTY_MESSAGE)
    try:
        return pipeline.run(message)
    except GuardrailTrippedError as e:
        logger.info("[api:chat] guardrail tripped: %s", [k for k, v in e.details.items() if v.get("failed")])
        return error_response(400, e.message, e.details)
    except EmptyAnswerError:
        logger.info("[api:chat] empty answer")
        return error_response(404, MSG_NO_ANSWER)
    except openai.RateLimitError:
        logger.warning("[api:chat] upstream rate limit")
        return error_response(429, MSG_RATE_LIMITED)
    except (openai.AuthenticationError, openai.PermissionDeniedError, ServiceUnavailableError):
        logger.exception("[api:chat] upstream authentication/configuration error")
        return error_response(500, MSG_MISCONFIGURED)
    except AgentOutputError:
        logger.exception("[api:chat] agent returned no usable output")
        return error_response(500, MSG_INTERNAL)
    except Exception:
        logger.exception("[api:chat] chat failed")
        return error_response(500, MSG_INTERNAL)
