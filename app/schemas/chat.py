"""Schemas for the chat endpoint."""

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Request body for POST /api/chat. The system is stateless; only the current message is sent."""

    message: str = Field("", description="User question for the agent.")


class CitationOut(BaseModel):
    """One citation as returned to the browser."""

    citation: str = Field(..., description="Exact excerpt cited in the answer.")
    source_file: str = Field(..., description="File name of the transcript the excerpt comes from.")
    time_stamp: str = Field(..., description="Start–end timestamp of the excerpt.")
    source_url: str = Field("", description="Public URL of the source file; empty when unmapped.")
    date: str = Field("", description="Display date of the source file; empty when unmapped.")


class ChatResponse(BaseModel):
    """Response for POST /api/chat."""

    reply: str = Field(..., description="Answer text ready for display (includes the source URL in source-file mode).")
    output_text: str = Field(..., description="Answer text exactly as produced by the agent.")
    citations: list[CitationOut] = Field(default_factory=list, description="Citations, in order of first appearance in the answer.")
    source_url: str = Field("", description="URL of the single source file (source-file mode only).")


class ErrorResponse(BaseModel):
    """Body for every non-2xx response from POST /api/chat."""

    error: bool = True
    message: str
    guardrail_details: dict | None = None
