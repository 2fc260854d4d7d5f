"""Shared fixtures for the generator test suite."""

import pytest

from app.config import GenerationConfig, Settings, build_generation_config, get_generation_config, get_settings
from app.db.supabase_client import reset_supabase_client
from app.models.generation import SubjectRequest


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables and clear cached settings/clients."""
    get_settings.cache_clear()
    get_generation_config.cache_clear()
    reset_supabase_client()

    monkeypatch.setenv("GEMINI_API_KEY", "test-gemini-api-key")
    monkeypatch.setenv("PERPLEXITY_API_KEY", "test-perplexity-api-key")
    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    monkeypatch.setenv("SUPABASE_URL", "https://test.supabase.co")
    monkeypatch.setenv("SUPABASE_KEY", "test-supabase-key")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.delenv("TRUSTED_PROXIES", raising=False)

    yield

    get_settings.cache_clear()
    get_generation_config.cache_clear()
    reset_supabase_client()


def make_config(**overrides) -> GenerationConfig:
    """GenerationConfig with both main providers keyed and no retry delay."""
    values = dict(
        supabase_url="https://test.supabase.co",
        supabase_key="test-supabase-key",
        perplexity_api_key="pplx-key",
        gemini_api_key="gemini-key",
        groq_api_key=None,
        retry_base_delay_seconds=0,
        retry_max_jitter_seconds=0,
        heartbeat_interval_seconds=60,
    )
    values.update(overrides)
    return build_generation_config(Settings(_env_file=None, **values))


@pytest.fixture
def generation_config() -> GenerationConfig:
    return make_config()


@pytest.fixture
def maths_subject() -> SubjectRequest:
    return SubjectRequest(name="Mathematics", marks=3, topics=["algebra"])
