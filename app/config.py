"""Configuration management for the mock exam generation service.

This module uses Pydantic Settings to load configuration from environment
variables. Supabase settings are validated at startup; provider credentials
are optional because a missing key only fails the generation attempts routed
to that provider.

``GenerationConfig`` is the explicit, immutable configuration object that is
built once from ``Settings`` and handed to the provider client, subject
generator and paper orchestrator.
"""

from functools import lru_cache
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.normalizers import normalize_subject_name

ProviderKind = Literal["chat_completions", "gemini"]

PERPLEXITY_ENDPOINT = "https://api.perplexity.ai/chat/completions"
GROQ_ENDPOINT = "https://api.groq.com/openai/v1/chat/completions"

# Language and reasoning subjects go to the search-backed provider,
# quantitative and technical subjects to Gemini.
DEFAULT_SUBJECT_PROVIDERS: Dict[str, str] = {
    "Reasoning": "perplexity",
    "English Language": "perplexity",
    "General Studies/GK": "perplexity",
    "Mathematics": "gemini",
    "C/C++ Programming": "gemini",
    "Data Structures": "gemini",
    "DBMS & SQL": "gemini",
    "Operating Systems": "gemini",
    "Computer Networks": "gemini",
    "Web Technologies": "gemini",
    "Software Engineering": "gemini",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All sensitive values (API keys, database credentials) must be
    provided via environment variables or .env file.
    """

    # Provider credentials
    perplexity_api_key: Optional[str] = Field(
        default=None,
        description="Perplexity API key (chat completions)"
    )
    groq_api_key: Optional[str] = Field(
        default=None,
        description="Groq API key (OpenAI-compatible chat completions)"
    )
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="Google Gemini API key"
    )

    # Provider models, first entry is used on the first attempt
    perplexity_models: List[str] = Field(default=["sonar-pro", "sonar"])
    groq_models: List[str] = Field(
        default=["llama-3.3-70b-versatile", "llama-3.1-8b-instant"]
    )
    gemini_models: List[str] = Field(
        default=["gemini-2.0-flash", "gemini-2.0-flash-lite"]
    )

    # Provider routing
    technical_provider: str = Field(
        default="gemini",
        description="Provider for technical subjects without an explicit mapping"
    )
    non_technical_provider: str = Field(
        default="perplexity",
        description="Provider for non-technical subjects without an explicit mapping"
    )

    # Supabase Configuration
    supabase_url: str = Field(
        ...,
        description="Supabase project URL"
    )
    supabase_key: str = Field(
        ...,
        description="Supabase anonymous/service role key"
    )
    supabase_service_role_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key (bypasses RLS when set)"
    )

    # Generation tunables
    max_attempts: int = Field(default=2, ge=1, description="Attempts per subject")
    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    retry_max_jitter_seconds: float = Field(default=0.5, ge=0)
    batch_size: int = Field(
        default=3,
        ge=0,
        description="Subjects generated concurrently (0 = all at once)"
    )
    heartbeat_interval_seconds: float = Field(default=2.0, gt=0)
    request_timeout_seconds: float = Field(default=60.0, gt=0)
    temperature: float = Field(default=0.7, ge=0, le=2)
    max_tokens: int = Field(default=4000, gt=0)

    # Paper metadata
    paper_total_marks: int = Field(default=100, ge=0)
    paper_duration_minutes: int = Field(default=90, ge=0)
    paper_title_prefix: str = Field(default="RRB JE Mock")

    # Comma-separated list of proxies allowed to set X-Forwarded-For
    trusted_proxies: Optional[str] = Field(default=None)

    # Model configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("perplexity_api_key", "groq_api_key", "gemini_api_key")
    @classmethod
    def blank_key_is_missing(cls, v: Optional[str]) -> Optional[str]:
        """Treat empty or whitespace-only provider keys as not configured."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: str) -> str:
        """Validate that Supabase URL is present and properly formatted."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_URL must be set in environment variables")

        url = v.strip()
        if not url.startswith("https://"):
            raise ValueError(
                "SUPABASE_URL must start with https:// "
                f"(got: {url[:20]}...)"
            )

        return url

    @field_validator("supabase_key")
    @classmethod
    def validate_supabase_key(cls, v: str) -> str:
        """Validate that Supabase key is present and non-empty."""
        if not v or not v.strip():
            raise ValueError("SUPABASE_KEY must be set in environment variables")
        return v.strip()


class ProviderSpec(BaseModel):
    """Endpoint, credential and model list for one AI provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ProviderKind
    endpoint: Optional[str] = None
    api_key: Optional[str] = Field(default=None, repr=False)
    models: List[str] = Field(min_length=1)

    @property
    def configured(self) -> bool:
        return self.api_key is not None

    def pick_model(self, attempt_index: int) -> str:
        """Rotate through models so retries can land on a smaller model."""
        return self.models[attempt_index % len(self.models)]


class GenerationConfig(BaseModel):
    """Everything the generation pipeline needs, resolved once at startup."""

    model_config = ConfigDict(frozen=True)

    providers: Dict[str, ProviderSpec]
    subject_providers: Dict[str, str] = Field(default_factory=dict)
    category_providers: Dict[str, str]
    fallback_providers: Dict[str, str]
    max_attempts: int = 2
    retry_base_delay_seconds: float = 1.0
    retry_max_jitter_seconds: float = 0.5
    batch_size: int = 3
    heartbeat_interval_seconds: float = 2.0
    request_timeout_seconds: float = 60.0
    temperature: float = 0.7
    max_tokens: int = 4000
    total_marks: int = 100
    duration_minutes: int = 90
    title_prefix: str = "RRB JE Mock"

    def provider_for(self, subject_name: str, category: str) -> str:
        """Preferred provider for a subject, falling back to the category default."""
        provider = self.subject_providers.get(normalize_subject_name(subject_name))
        if provider:
            return provider
        return self.category_providers[category]

    def fallback_for(self, provider: str) -> str:
        """The provider to swap to after ``provider`` fails."""
        return self.fallback_providers.get(provider, provider)


def build_generation_config(settings: Settings) -> GenerationConfig:
    """Resolve settings into the provider table and pipeline tunables."""
    providers = {
        "perplexity": ProviderSpec(
            name="perplexity",
            kind="chat_completions",
            endpoint=PERPLEXITY_ENDPOINT,
            api_key=settings.perplexity_api_key,
            models=settings.perplexity_models,
        ),
        "groq": ProviderSpec(
            name="groq",
            kind="chat_completions",
            endpoint=GROQ_ENDPOINT,
            api_key=settings.groq_api_key,
            models=settings.groq_models,
        ),
        "gemini": ProviderSpec(
            name="gemini",
            kind="gemini",
            api_key=settings.gemini_api_key,
            models=settings.gemini_models,
        ),
    }

    for provider in (settings.technical_provider, settings.non_technical_provider):
        if provider not in providers:
            raise ValueError(
                f"Unknown provider '{provider}'. "
                f"Must be one of: {', '.join(sorted(providers))}"
            )

    # Two-provider swap: each side of the technical/non-technical pair falls
    # back to the other; groq falls back to the technical default.
    fallback_providers = {
        settings.technical_provider: settings.non_technical_provider,
        settings.non_technical_provider: settings.technical_provider,
    }
    fallback_providers.setdefault("groq", settings.technical_provider)
    for name in providers:
        fallback_providers.setdefault(name, settings.non_technical_provider)

    return GenerationConfig(
        providers=providers,
        subject_providers=dict(DEFAULT_SUBJECT_PROVIDERS),
        category_providers={
            "technical": settings.technical_provider,
            "non_technical": settings.non_technical_provider,
        },
        fallback_providers=fallback_providers,
        max_attempts=settings.max_attempts,
        retry_base_delay_seconds=settings.retry_base_delay_seconds,
        retry_max_jitter_seconds=settings.retry_max_jitter_seconds,
        batch_size=settings.batch_size,
        heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
        request_timeout_seconds=settings.request_timeout_seconds,
        temperature=settings.temperature,
        max_tokens=settings.max_tokens,
        total_marks=settings.paper_total_marks,
        duration_minutes=settings.paper_duration_minutes,
        title_prefix=settings.paper_title_prefix,
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance.

    This function uses lru_cache to ensure settings are loaded only once
    and reused across the application lifetime.

    Returns:
        Settings: Validated application settings

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    return Settings()


@lru_cache
def get_generation_config() -> GenerationConfig:
    """Get the cached GenerationConfig built from the current settings."""
    return build_generation_config(get_settings())
