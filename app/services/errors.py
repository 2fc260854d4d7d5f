"""Error taxonomy for the question generation pipeline.

Per-subject errors (everything deriving from ``GenerationError``) are
absorbed by the subject generator. ``PersistenceError`` is the only error
that ends a whole generation run.
"""

from typing import List, Optional


class GenerationError(Exception):
    """Base class for failures of a single generation attempt."""


class ConfigurationError(GenerationError):
    """A provider was selected but is unknown or has no credential."""


class ProviderError(GenerationError):
    """A provider call failed with a non-success status or never got a response.

    Attributes:
        provider: Provider name
        status: HTTP status code, or None for transport failures
        body: Diagnostic detail taken from the response body
    """

    def __init__(self, provider: str, status: Optional[int], body: str = ""):
        self.provider = provider
        self.status = status
        self.body = body
        label = f"HTTP {status}" if status is not None else "request failed"
        message = f"{provider} {label}"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)


class MalformedResponseError(GenerationError):
    """Provider output could not be extracted or parsed as JSON."""


class ExhaustedRetriesError(GenerationError):
    """Every attempt for a subject failed.

    Attributes:
        subject: Subject name
        errors: One error per failed attempt, in attempt order
    """

    def __init__(self, subject: str, errors: List[Exception]):
        self.subject = subject
        self.errors = list(errors)
        last = str(self.errors[-1]) if self.errors else "no attempts made"
        super().__init__(
            f"{subject}: all {len(self.errors)} attempt(s) failed; last error: {last}"
        )


class PersistenceError(Exception):
    """Saving or reading a paper failed; nothing was left half-saved."""
