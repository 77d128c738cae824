"""
Response normalizer: agent structured output -> wire-level ChatResponse.

Citations mode enriches each citation from the static source map; source-file
mode attaches one resolved URL to the whole answer. Pure functions: the same
input always gives the same response.
"""

import logging

from app.core.errors import EmptyAnswerError
from app.core.source_map import SourceEntry
from app.schemas.agent import AgentCitation, CitedAnswer, SourceFileAnswer
from app.schemas.chat import ChatResponse, CitationOut

logger = logging.getLogger(__name__)


def _require_answer(output_text: str) -> str:
    if not output_text or not output_text.strip():
        raise EmptyAnswerError("Agent returned an empty answer")
    return output_text


def order_by_appearance(output_text: str, citations: list[AgentCitation]) -> list[AgentCitation]:
    """
    Order citations by where their excerpt first appears in the answer.
    Excerpts not found in the answer keep their relative order, after the found ones.
    """
    not_found = len(output_text) + 1

    def position(item: tuple[int, AgentCitation]) -> tuple[int, int]:
        index, citation = item
        excerpt = citation.citation.strip()
        pos = output_text.find(excerpt) if excerpt else -1
        return (pos if pos >= 0 else not_found, index)

    return [c for _, c in sorted(enumerate(citations), key=position)]


def normalize_cited_answer(output: CitedAnswer, source_map: dict[str, SourceEntry]) -> ChatResponse:
    output_text = _require_answer(output.output_text)
    citations: list[CitationOut] = []
    for citation in order_by_appearance(output_text, output.citations):
        entry = source_map.get(citation.source_file) or SourceEntry()
        citations.append(
            CitationOut(
                citation=citation.citation,
                source_file=citation.source_file,
                time_stamp=citation.time_stamp,
                source_url=entry.url,
                date=entry.date,
            )
        )
    unmapped = [c.source_file for c in citations if not c.source_url]
    if unmapped:
        logger.info("[normalizer] unmapped source files: %s", unmapped)
    return ChatResponse(reply=output_text, output_text=output_text, citations=citations)


def normalize_source_file_answer(output: SourceFileAnswer, source_url: str) -> ChatResponse:
    output_text = _require_answer(output.output_text)
    reply = f"{output_text}\n\n{source_url}" if source_url else output_text
    return ChatResponse(reply=reply, output_text=output_text, source_url=source_url)
