"""
Tests for the agent layer: run_agent(), RetrievalAgentInvoker, SourceUrlResolver.
"""

from types import SimpleNamespace

import httpx
import openai
import pytest

from app.agent.llm import build_openai_client, run_agent
from app.core.errors import AgentOutputError, ServiceUnavailableError
from app.schemas.agent import AgentCitation, CitedAnswer, SourceFileAnswer, SourceUrlLookup
from app.services.agent_service import (
    RetrievalAgentInvoker,
    SourceUrlResolver,
    answer_agent_spec,
    url_agent_spec,
)
from fakes import fake_response

ANSWER = CitedAnswer(
    output_text="We have allocated an extra 100 million SEK.",
    citations=[AgentCitation(citation="extra 100 million SEK", source_file="a.pdf", time_stamp="00:01–00:02")],
)


def _user(text: str) -> list[dict]:
    return [{"role": "user", "content": [{"type": "input_text", "text": text}]}]


class TestAgentSpecs:
    def test_citations_mode(self) -> None:
        spec = answer_agent_spec("citations", vector_store_id="vs_test")
        assert spec.output_type is CitedAnswer
        assert spec.tools == [{"type": "file_search", "vector_store_ids": ["vs_test"]}]
        assert spec.temperature == 0.0
        assert spec.max_output_tokens == 2048

    def test_source_file_mode(self) -> None:
        assert answer_agent_spec("source_file").output_type is SourceFileAnswer

    def test_unknown_mode_raises(self) -> None:
        with pytest.raises(ValueError):
            answer_agent_spec("markdown")


class TestRunAgent:
    def test_sends_spec_and_returns_transcript_items(self, fake_openai) -> None:
        search_call = SimpleNamespace(type="file_search_call", id="fs_1")
        client = fake_openai(lambda kw: fake_response(ANSWER, text=ANSWER.model_dump_json(), extra_items=[search_call]))
        spec = answer_agent_spec("citations", vector_store_id="vs_test")
        run = run_agent(client, spec, _user("fråga"))
        call = client.responses.calls[0]
        assert call["text_format"] is CitedAnswer
        assert call["tools"] == spec.tools
        assert call["top_p"] == 1.0
        assert call["input"] == _user("fråga")
        assert run.output == ANSWER
        assert run.new_items == [
            {"type": "item_reference", "id": "fs_1"},
            {"role": "assistant", "content": ANSWER.model_dump_json()},
        ]

    def test_unset_settings_are_not_sent(self, fake_openai) -> None:
        client = fake_openai(lambda kw: fake_response(None))
        spec = url_agent_spec("vs_test").with_instructions("x")
        run_agent(client, spec, _user("q"))
        call = client.responses.calls[0]
        assert "max_output_tokens" not in call
        assert "top_p" not in call


class TestRetrievalAgentInvoker:
    def test_returns_output_and_extends_conversation(self, fake_openai) -> None:
        client = fake_openai(lambda kw: fake_response(ANSWER, text="json"))
        conversation = _user("fråga")
        output = RetrievalAgentInvoker(client, answer_agent_spec("citations")).invoke(conversation)
        assert output == ANSWER
        assert len(conversation) == 2
        assert conversation[-1] == {"role": "assistant", "content": "json"}

    def test_no_output_is_fatal(self, fake_openai) -> None:
        client = fake_openai(lambda kw: fake_response(None))
        conversation = _user("fråga")
        with pytest.raises(AgentOutputError):
            RetrievalAgentInvoker(client, answer_agent_spec("citations")).invoke(conversation)
        assert len(client.responses.calls) == 1
        assert len(conversation) == 1


class TestSourceUrlResolver:
    def test_resolves_url_with_file_bound_instructions(self, fake_openai) -> None:
        client = fake_openai(lambda kw: fake_response(SourceUrlLookup(source_url=" https://example.org/doc ")))
        conversation = _user("fråga")
        url = SourceUrlResolver(client, url_agent_spec(), url_field="url").resolve("budget.pdf", conversation)
        assert url == "https://example.org/doc"
        instructions = client.responses.calls[0]["instructions"]
        assert "'budget.pdf'" in instructions
        assert "'url'" in instructions
        assert len(conversation) == 2

    def test_upstream_error_gives_empty_url(self, fake_openai) -> None:
        def handler(kw):
            raise openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/responses"))

        assert SourceUrlResolver(fake_openai(handler), url_agent_spec()).resolve("budget.pdf", _user("q")) == ""

    def test_missing_output_gives_empty_url(self, fake_openai) -> None:
        client = fake_openai(lambda kw: fake_response(None))
        assert SourceUrlResolver(client, url_agent_spec()).resolve("budget.pdf", _user("q")) == ""

    def test_blank_source_file_makes_no_call(self, fake_openai) -> None:
        client = fake_openai()
        assert SourceUrlResolver(client, url_agent_spec()).resolve("  ", _user("q")) == ""
        assert client.responses.calls == []


def test_build_client_without_key_fails_fast() -> None:
    with pytest.raises(ServiceUnavailableError):
        build_openai_client(api_key="")
