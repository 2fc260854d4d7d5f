"""Tests for provider calls (httpx chat completions and the Gemini SDK)."""

import json
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from google.genai import errors as genai_errors

from app.models.generation import SubjectRequest
from app.services.errors import ConfigurationError, MalformedResponseError, ProviderError
from app.services.provider_client import ProviderClient, build_prompt

from conftest import make_config

QUESTIONS_JSON = '[{"question": "2+2?", "options": ["3", "4", "5", "6"], "answer": "B"}]'


def chat_response(content: str) -> dict:
    return {"choices": [{"index": 0, "message": {"role": "assistant", "content": content}}]}


class Recorder:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, response: httpx.Response):
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


def make_client(handler, **config_overrides) -> ProviderClient:
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ProviderClient(make_config(**config_overrides), http_client=http_client)


@pytest.fixture
def reasoning() -> SubjectRequest:
    return SubjectRequest(name="Reasoning", marks=3, topics=["analogies", "series"])


class TestBuildPrompt:

    def test_prompt_names_count_subject_topics_and_category(self, reasoning):
        prompt = build_prompt(reasoning, "non_technical")

        assert "exactly 3 multiple-choice questions" in prompt
        assert '"Reasoning"' in prompt
        assert "analogies, series" in prompt
        assert '"category": "non_technical"' in prompt
        assert "ONLY a JSON array" in prompt

    def test_prompt_without_topics_uses_subject_name(self):
        prompt = build_prompt(SubjectRequest(name="Polity", marks=1), "non_technical")

        assert "spread evenly across the questions: Polity." in prompt


class TestChatCompletions:

    @pytest.mark.asyncio
    async def test_success_returns_content(self, reasoning):
        recorder = Recorder(httpx.Response(200, json=chat_response(QUESTIONS_JSON)))
        client = make_client(recorder)

        text = await client.call("perplexity", reasoning, "non_technical", 0)

        assert text == QUESTIONS_JSON
        request = recorder.requests[0]
        assert str(request.url) == "https://api.perplexity.ai/chat/completions"
        assert request.headers["Authorization"] == "Bearer pplx-key"
        body = json.loads(request.content)
        assert body["model"] == "sonar-pro"
        assert [m["role"] for m in body["messages"]] == ["system", "user"]
        assert "Reasoning" in body["messages"][1]["content"]
        assert body["temperature"] == 0.7
        assert body["max_tokens"] == 4000

    @pytest.mark.asyncio
    async def test_retry_attempt_rotates_model(self, reasoning):
        recorder = Recorder(httpx.Response(200, json=chat_response(QUESTIONS_JSON)))
        client = make_client(recorder)

        await client.call("perplexity", reasoning, "non_technical", 1)

        assert json.loads(recorder.requests[0].content)["model"] == "sonar"

    @pytest.mark.asyncio
    async def test_groq_uses_its_endpoint(self, reasoning):
        recorder = Recorder(httpx.Response(200, json=chat_response(QUESTIONS_JSON)))
        client = make_client(recorder, groq_api_key="groq-key")

        await client.call("groq", reasoning, "non_technical", 0)

        request = recorder.requests[0]
        assert str(request.url) == "https://api.groq.com/openai/v1/chat/completions"
        assert request.headers["Authorization"] == "Bearer groq-key"

    @pytest.mark.asyncio
    async def test_error_status_raises_provider_error_with_detail(self, reasoning):
        recorder = Recorder(httpx.Response(402, json={"error": {"message": "Insufficient credits"}}))
        client = make_client(recorder)

        with pytest.raises(ProviderError) as exc_info:
            await client.call("perplexity", reasoning, "non_technical", 0)

        assert exc_info.value.status == 402
        assert exc_info.value.provider == "perplexity"
        assert exc_info.value.body == "Insufficient credits"
        assert "HTTP 402" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unparseable_error_body_keeps_status(self, reasoning):
        recorder = Recorder(httpx.Response(503, text="<html>upstream down</html>"))
        client = make_client(recorder)

        with pytest.raises(ProviderError) as exc_info:
            await client.call("perplexity", reasoning, "non_technical", 0)

        assert exc_info.value.status == 503
        assert "upstream down" in exc_info.value.body

    @pytest.mark.asyncio
    async def test_missing_choices_raises_malformed(self, reasoning):
        recorder = Recorder(httpx.Response(200, json={"id": "x", "choices": []}))
        client = make_client(recorder)

        with pytest.raises(MalformedResponseError):
            await client.call("perplexity", reasoning, "non_technical", 0)

    @pytest.mark.asyncio
    async def test_transport_failure_raises_provider_error(self, reasoning):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(refuse)

        with pytest.raises(ProviderError) as exc_info:
            await client.call("perplexity", reasoning, "non_technical", 0)

        assert exc_info.value.status is None
        assert "connection refused" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_missing_key_fails_before_any_request(self, reasoning):
        recorder = Recorder(httpx.Response(200, json=chat_response(QUESTIONS_JSON)))
        client = make_client(recorder)  # groq has no key in the test config

        with pytest.raises(ConfigurationError, match="GROQ_API_KEY"):
            await client.call("groq", reasoning, "non_technical", 0)

        assert recorder.requests == []

    @pytest.mark.asyncio
    async def test_unknown_provider(self, reasoning):
        client = make_client(Recorder(httpx.Response(200)))

        with pytest.raises(ConfigurationError, match="Unknown provider"):
            await client.call("openai", reasoning, "non_technical", 0)


class TestGemini:

    def make_gemini_client(self, generate: AsyncMock) -> tuple[ProviderClient, MagicMock]:
        genai_client = MagicMock()
        genai_client.aio.models.generate_content = generate
        factory = MagicMock(return_value=genai_client)
        return ProviderClient(make_config(), gemini_client_factory=factory), factory

    @pytest.mark.asyncio
    async def test_success_returns_response_text(self, maths_subject):
        generate = AsyncMock(return_value=MagicMock(text=QUESTIONS_JSON))
        client, factory = self.make_gemini_client(generate)

        text = await client.call("gemini", maths_subject, "non_technical", 0)

        assert text == QUESTIONS_JSON
        factory.assert_called_once_with("gemini-key", 60.0)
        kwargs = generate.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert "Mathematics" in kwargs["contents"]
        assert kwargs["config"].temperature == 0.7
        assert kwargs["config"].max_output_tokens == 4000

    @pytest.mark.asyncio
    async def test_configured_timeout_reaches_client_factory(self, maths_subject):
        genai_client = MagicMock()
        genai_client.aio.models.generate_content = AsyncMock(return_value=MagicMock(text=QUESTIONS_JSON))
        factory = MagicMock(return_value=genai_client)
        client = ProviderClient(make_config(request_timeout_seconds=12.5), gemini_client_factory=factory)

        await client.call("gemini", maths_subject, "non_technical", 0)

        factory.assert_called_once_with("gemini-key", 12.5)

    @pytest.mark.asyncio
    async def test_retry_uses_smaller_model(self, maths_subject):
        generate = AsyncMock(return_value=MagicMock(text=QUESTIONS_JSON))
        client, _ = self.make_gemini_client(generate)

        await client.call("gemini", maths_subject, "non_technical", 1)

        assert generate.call_args.kwargs["model"] == "gemini-2.0-flash-lite"

    @pytest.mark.asyncio
    async def test_api_error_maps_to_provider_error(self, maths_subject):
        error = genai_errors.ClientError(
            429, {"error": {"code": 429, "message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        )
        client, _ = self.make_gemini_client(AsyncMock(side_effect=error))

        with pytest.raises(ProviderError) as exc_info:
            await client.call("gemini", maths_subject, "non_technical", 0)

        assert exc_info.value.status == 429
        assert exc_info.value.provider == "gemini"
        assert "Quota exceeded" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_text_raises_malformed(self, maths_subject):
        client, _ = self.make_gemini_client(AsyncMock(return_value=MagicMock(text=None)))

        with pytest.raises(MalformedResponseError):
            await client.call("gemini", maths_subject, "non_technical", 0)
