"""Send one subject's question request to one AI provider.

Two wire conventions are supported:

- ``chat_completions`` (Perplexity, Groq): httpx POST with a bearer token and
  ``{model, messages, temperature, max_tokens}``; the text is read from
  ``choices[0].message.content``.
- ``gemini``: the google-genai SDK with ``contents`` plus a
  ``GenerateContentConfig``; the text is read from ``response.text``.

This module never retries. Retry and provider fallback belong to the subject
generator.
"""

import logging
import time
from typing import Any, Callable, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from app.config import GenerationConfig, ProviderSpec
from app.models.generation import SubjectRequest
from app.models.question import Category
from app.services.errors import ConfigurationError, MalformedResponseError, ProviderError
from app.services.gemini_client import get_gemini_client

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an experienced competitive-exam paper setter. "
    "You reply with valid JSON only."
)

QUESTION_PROMPT = """Generate exactly {count} multiple-choice questions for the subject "{subject}" in a {category_label} section of a competitive recruitment exam.

Topics to cover, spread evenly across the questions: {topics}.

Each question must be an object with these keys:
- "question_text": the question
- "options": {{"a": "...", "b": "...", "c": "...", "d": "..."}}
- "correct_answer": exactly one of "a", "b", "c", "d"
- "explanation": one or two sentences explaining the correct answer
- "category": "{category}"

Rules:
- Exactly one option is correct.
- Do not repeat questions.
- Return ONLY a JSON array of exactly {count} objects, with no markdown and no commentary."""

CATEGORY_LABELS = {
    "technical": "technical",
    "non_technical": "non-technical (general aptitude)",
}


def build_prompt(subject: SubjectRequest, category: Category) -> str:
    """Build the fixed-structure generation prompt for one subject."""
    topics = ", ".join(subject.topics) if subject.topics else subject.name
    return QUESTION_PROMPT.format(
        count=subject.marks,
        subject=subject.name,
        category_label=CATEGORY_LABELS[category],
        category=category,
        topics=topics,
    )


def _error_detail(response: httpx.Response) -> str:
    """Best-effort diagnostic text from a failed provider response."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:300]

    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
        for key in ("message", "detail"):
            if data.get(key):
                return str(data[key])
    return response.text[:300]


class ProviderClient:
    """Calls provider completion endpoints and returns raw text content.

    Args:
        config: Resolved generation configuration (provider table, sampling)
        http_client: Optional shared httpx client; one is opened per call
            when omitted
        gemini_client_factory: Builds a genai client from an API key and timeout
    """

    def __init__(
        self,
        config: GenerationConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        gemini_client_factory: Callable[[str, float], genai.Client] = get_gemini_client,
    ):
        self.config = config
        self._http_client = http_client
        self._gemini_client_factory = gemini_client_factory

    def _spec(self, provider: str) -> ProviderSpec:
        spec = self.config.providers.get(provider)
        if spec is None:
            raise ConfigurationError(
                f"Unknown provider '{provider}'. "
                f"Configured providers: {', '.join(sorted(self.config.providers))}"
            )
        if not spec.configured:
            raise ConfigurationError(
                f"{provider.upper()}_API_KEY is not set; cannot call {provider}"
            )
        return spec

    async def call(
        self,
        provider: str,
        subject: SubjectRequest,
        category: Category,
        attempt_index: int = 0,
    ) -> str:
        """Request ``subject.marks`` questions from ``provider``.

        Args:
            provider: Provider name from the configuration
            subject: Subject to generate questions for
            category: "technical" or "non_technical"
            attempt_index: Zero-based attempt number, used to rotate models

        Returns:
            Raw text content of the first completion

        Raises:
            ConfigurationError: Unknown provider or missing API key
            ProviderError: Non-success HTTP status or transport failure
            MalformedResponseError: Success response without completion text
        """
        spec = self._spec(provider)
        model = spec.pick_model(attempt_index)
        prompt = build_prompt(subject, category)

        logger.info(
            f"Requesting {subject.marks} questions for {subject.name} "
            f"from {provider} ({model}, attempt {attempt_index + 1})"
        )
        start = time.time()

        if spec.kind == "gemini":
            text = await self._call_gemini(spec, model, prompt)
        else:
            text = await self._call_chat_completions(spec, model, prompt)

        logger.info(
            f"{provider} returned {len(text)} chars for {subject.name} "
            f"in {time.time() - start:.2f}s"
        )
        return text

    async def _post(self, client: httpx.AsyncClient, spec: ProviderSpec, body: dict[str, Any]) -> httpx.Response:
        headers = {
            "Authorization": f"Bearer {spec.api_key}",
            "Content-Type": "application/json",
        }
        try:
            return await client.post(spec.endpoint or "", json=body, headers=headers)
        except httpx.HTTPError as e:
            raise ProviderError(spec.name, None, f"{type(e).__name__}: {e}") from e

    async def _call_chat_completions(self, spec: ProviderSpec, model: str, prompt: str) -> str:
        body = {
            "model": model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

        if self._http_client is not None:
            response = await self._post(self._http_client, spec, body)
        else:
            async with httpx.AsyncClient(timeout=self.config.request_timeout_seconds) as client:
                response = await self._post(client, spec, body)

        if not response.is_success:
            raise ProviderError(spec.name, response.status_code, _error_detail(response))

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseError(
                f"{spec.name} response has no choices[0].message.content"
            ) from e
        if not isinstance(content, str):
            raise MalformedResponseError(f"{spec.name} completion content is not text")
        return content

    async def _call_gemini(self, spec: ProviderSpec, model: str, prompt: str) -> str:
        client = self._gemini_client_factory(
            spec.api_key or "", self.config.request_timeout_seconds
        )
        try:
            response = await client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=SYSTEM_PROMPT,
                    temperature=self.config.temperature,
                    max_output_tokens=self.config.max_tokens,
                ),
            )
        except genai_errors.APIError as e:
            raise ProviderError(spec.name, e.code, e.message or str(e)) from e
        except httpx.HTTPError as e:
            raise ProviderError(spec.name, None, f"{type(e).__name__}: {e}") from e

        text = response.text if response else None
        if not text:
            raise MalformedResponseError(f"{spec.name} returned an empty response")
        return text
