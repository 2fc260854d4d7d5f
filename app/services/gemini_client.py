"""Gemini API client initialization with error handling.

Uses the modern google-genai SDK (not google.generativeai). Clients are
cached per API key and timeout so concurrent subject generations share one
client. The timeout bounds every request the client makes; a hung call
fails instead of stalling its batch.
"""

from functools import lru_cache
from typing import Optional

from google import genai
from google.genai import types

from app.config import get_settings
from app.services.errors import ConfigurationError


@lru_cache(maxsize=4)
def _client_for_key(api_key: str, timeout_ms: Optional[int] = None) -> genai.Client:
    if timeout_ms is None:
        return genai.Client(api_key=api_key)
    return genai.Client(api_key=api_key, http_options=types.HttpOptions(timeout=timeout_ms))


def get_gemini_client(
    api_key: Optional[str] = None, timeout_seconds: Optional[float] = None
) -> genai.Client:
    """Initialize and return a Gemini API client.

    Args:
        api_key: Key to use; defaults to GEMINI_API_KEY from the settings
        timeout_seconds: Per-request timeout; the SDK default when omitted

    Returns:
        genai.Client: Initialized Gemini client ready for API calls.

    Raises:
        ConfigurationError: If no Gemini API key is available.

    Example:
        >>> client = get_gemini_client(timeout_seconds=60)
        >>> response = await client.aio.models.generate_content(
        ...     model="gemini-2.0-flash",
        ...     contents="Hello world"
        ... )
    """
    key = api_key if api_key is not None else get_settings().gemini_api_key
    if not key or not key.strip():
        raise ConfigurationError(
            "GEMINI_API_KEY not set in environment. "
            "Please set this variable in your .env file or environment."
        )
    # HttpOptions.timeout is in milliseconds
    timeout_ms = int(timeout_seconds * 1000) if timeout_seconds is not None else None
    return _client_for_key(key.strip(), timeout_ms)
