"""Structured output schemas the hosted agents are bound to."""

from pydantic import BaseModel, Field


class AgentCitation(BaseModel):
    citation: str = Field(..., description="Exact quotation or relevant excerpt as cited in output_text.")
    source_file: str = Field(..., description="File name of the source transcript used.")
    time_stamp: str = Field(..., description="Start–end time of the excerpt, e.g. 00:12:14–00:13:02.")


class CitedAnswer(BaseModel):
    """Answer with per-citation source files (citations mode)."""

    output_text: str
    citations: list[AgentCitation]


class SourceFileAnswer(BaseModel):
    """Answer with one source file for the whole answer (source-file mode)."""

    output_text: str
    source_file: str


class SourceUrlLookup(BaseModel):
    """Output of the URL resolver agent."""

    source_url: str
