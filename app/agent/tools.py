"""
Agent tools: hosted tool definitions passed to the Responses API.

Only file_search is used: retrieval runs inside OpenAI against a vector store
holding the council-debate transcripts.
"""

from typing import Any


def file_search_tool(vector_store_ids: list[str], max_num_results: int | None = None) -> dict[str, Any]:
    """Build a file_search tool bound to the given vector stores."""
    if not vector_store_ids:
        raise ValueError("file_search needs at least one vector store id")
    tool: dict[str, Any] = {"type": "file_search", "vector_store_ids": list(vector_store_ids)}
    if max_num_results is not None:
        tool["max_num_results"] = max_num_results
    return tool
