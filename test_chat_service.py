"""
Tests for the Gemini client and the chat fallback logic.
"""
import pytest
import requests

from enrolment_pulse.exceptions import LLMUnavailableError
from enrolment_pulse.services.chat_service import ChatService, build_data_context
from enrolment_pulse.services.llm_client import GeminiClient


class FakeResponse:

    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("no JSON")
        return self._payload


class FakeSession:
    """Records the last request and returns a canned response or raises."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, params=None, json=None, timeout=None):
        self.calls.append({"url": url, "params": params, "json": json, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


def text_payload(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestGeminiClient:

    def test_disabled_without_key(self):
        client = GeminiClient(api_key="", session=FakeSession())
        assert client.enabled is False
        with pytest.raises(LLMUnavailableError):
            client.generate("system", "hi")

    def test_request_layout(self):
        session = FakeSession(FakeResponse(payload=text_payload("Namaste")))
        client = GeminiClient(api_key="key-1", model="gemini-test", api_base="https://example.test/v1/", session=session)

        history = [{"role": "user", "content": "q1"}, {"role": "assistant", "content": "a1"}]
        assert client.generate("system prompt", "q2", history) == "Namaste"

        call = session.calls[0]
        assert call["url"] == "https://example.test/v1/models/gemini-test:generateContent"
        assert call["params"] == {"key": "key-1"}
        roles = [c["role"] for c in call["json"]["contents"]]
        assert roles == ["user", "model", "user", "model", "user"]
        assert call["json"]["contents"][0]["parts"][0]["text"] == "system prompt"
        assert call["json"]["contents"][-1]["parts"][0]["text"] == "q2"

    @pytest.mark.parametrize("session", [
        FakeSession(error=requests.ConnectionError("down")),
        FakeSession(FakeResponse(status_code=429, text="quota")),
        FakeSession(FakeResponse(payload={"candidates": []})),
        FakeSession(FakeResponse(payload=None)),
    ])
    def test_failures_raise_unavailable(self, session):
        client = GeminiClient(api_key="key-1", session=session)
        with pytest.raises(LLMUnavailableError) as exc_info:
            client.generate("system", "hi")
        assert exc_info.value.status_code == 503


class TestChatService:

    def test_local_reply_without_key(self, sample_records):
        client = GeminiClient(api_key="", session=FakeSession())
        reply = ChatService(sample_records, client).reply("Total enrolments in Bihar")
        assert reply.source == "local"
        assert reply.to_dict()["fallback"] is True
        assert reply.fallback_reason == "Gemini API key not configured"
        assert reply.insight["intent"] == "summary"
        assert "1,260" in reply.response

    def test_llm_reply(self, sample_records):
        session = FakeSession(FakeResponse(payload=text_payload("From the model")))
        client = GeminiClient(api_key="key-1", model="gemini-test", session=session)
        reply = ChatService(sample_records, client).reply("hello", [{"role": "user", "content": "earlier"}])
        assert reply.source == "llm"
        assert reply.response == "From the model"
        assert reply.model == "gemini-test"
        prompt = session.calls[0]["json"]["contents"][0]["parts"][0]["text"]
        assert "Uttar Pradesh" in prompt

    def test_falls_back_when_llm_fails(self, sample_records):
        session = FakeSession(FakeResponse(status_code=500, text="boom"))
        client = GeminiClient(api_key="key-1", session=session)
        reply = ChatService(sample_records, client).reply("Top performing districts")
        assert reply.source == "local"
        assert reply.fallback_reason == "Gemini API error"
        assert reply.insight["intent"] == "top"

    def test_data_context(self, sample_records):
        context = build_data_context(sample_records)
        assert "Total Enrolments: 5,355" in context
        assert "1. Uttar Pradesh: 3,780" in context
        assert "2025-03-21" in context
