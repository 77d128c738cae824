# Run from project root: uvicorn app.main:app --reload

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from app.api.dependencies import get_chat_pipeline
from app.api.handlers import MSG_EMPTY_MESSAGE, MSG_MISCONFIGURED, error_response
from app.api.routes import router
from app.core.errors import ServiceUnavailableError

logging.basicConfig(level=logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Build the pipeline (and OpenAI client) at startup: missing config fails here, not on first request
    get_chat_pipeline()
    yield


app = FastAPI(title="RF-chatt", lifespan=lifespan)
app.include_router(router)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return error_response(400, MSG_EMPTY_MESSAGE)


@app.exception_handler(ServiceUnavailableError)
async def service_unavailable_handler(request: Request, exc: ServiceUnavailableError):
    logging.getLogger(__name__).error("Service misconfigured: %s", exc.message)
    return error_response(500, MSG_MISCONFIGURED)


if __name__ == "__main__":
    print("RF-chatt booting...")
