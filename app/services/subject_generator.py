"""Generate one subject's questions with provider fallback.

A subject is tried against its preferred provider, then against the
fallback provider, for at most ``max_attempts`` attempts. When every attempt
fails the subject is filled with placeholder questions so a single provider
outage never blocks the paper. Callers always get exactly ``subject.marks``
questions back.
"""

import asyncio
import logging
from typing import List, Optional

from app.config import GenerationConfig
from app.models.generation import SubjectRequest
from app.models.question import Category, CanonicalQuestion, QuestionOptions
from app.services.content_extractor import parse_questions_json
from app.services.errors import ExhaustedRetriesError, GenerationError, ProviderError
from app.services.provider_client import ProviderClient
from app.services.question_normalizer import normalize
from app.utils.retry import classify_status, compute_backoff_delay

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "[Placeholder]"


def placeholder_question(
    subject: SubjectRequest, category: Category, index: int, reason: str
) -> CanonicalQuestion:
    """A synthetic question marking a slot that could not be generated."""
    return CanonicalQuestion(
        question_text=(
            f"{PLACEHOLDER_PREFIX} {subject.name} question {index + 1} on "
            f"'{subject.topic_at(index)}' could not be generated."
        ),
        options=QuestionOptions(a="Option A", b="Option B", c="Option C", d="Option D"),
        correct_answer="a",
        explanation=f"Auto-generated placeholder. Generation failed: {reason}",
        category=category,
        subject=subject.name,
        difficulty="medium",
        marks=1,
    )


def placeholder_questions(
    subject: SubjectRequest,
    category: Category,
    reason: str,
    start: int = 0,
) -> List[CanonicalQuestion]:
    """Placeholders for question slots ``start`` .. ``subject.marks - 1``."""
    return [
        placeholder_question(subject, category, index, reason)
        for index in range(start, subject.marks)
    ]


class SubjectGenerator:
    """Produces exactly ``subject.marks`` questions for one subject."""

    def __init__(self, config: GenerationConfig, provider_client: Optional[ProviderClient] = None):
        self.config = config
        self.provider_client = provider_client or ProviderClient(config)

    def providers_for(self, subject: SubjectRequest, category: Category) -> List[str]:
        """Provider for each attempt: preferred first, then alternating with its fallback."""
        preferred = self.config.provider_for(subject.name, category)
        fallback = self.config.fallback_for(preferred)
        return [
            preferred if attempt % 2 == 0 else fallback
            for attempt in range(self.config.max_attempts)
        ]

    async def _attempt(
        self, provider: str, subject: SubjectRequest, category: Category, attempt: int
    ) -> List[CanonicalQuestion]:
        raw = await self.provider_client.call(provider, subject, category, attempt)
        parsed = parse_questions_json(raw)
        return normalize(parsed, subject.name, category)

    async def generate(self, subject: SubjectRequest, category: Category) -> List[CanonicalQuestion]:
        """Generate questions for ``subject``; never raises for a failed attempt.

        Returns:
            Exactly ``subject.marks`` questions. Slots the providers did not
            fill are placeholder questions whose explanation names the reason.
        """
        if subject.marks == 0:
            return []

        errors: List[Exception] = []
        for attempt, provider in enumerate(self.providers_for(subject, category)):
            if attempt > 0:
                delay = compute_backoff_delay(
                    attempt - 1,
                    self.config.retry_base_delay_seconds,
                    self.config.retry_max_jitter_seconds,
                )
                logger.info(f"Retrying {subject.name} with {provider} in {delay:.2f}s")
                await asyncio.sleep(delay)

            try:
                questions = await self._attempt(provider, subject, category, attempt)
            except GenerationError as e:
                errors.append(e)
                kind = classify_status(e.status) if isinstance(e, ProviderError) else type(e).__name__
                logger.warning(
                    f"{subject.name} attempt {attempt + 1}/{self.config.max_attempts} "
                    f"via {provider} failed ({kind}): {e}"
                )
                continue
            except Exception as e:
                errors.append(e)
                logger.error(
                    f"{subject.name} attempt {attempt + 1}/{self.config.max_attempts} "
                    f"via {provider} raised unexpectedly: {type(e).__name__}: {e}",
                    exc_info=True,
                )
                continue

            if len(questions) >= subject.marks:
                return questions[: subject.marks]

            shortfall = subject.marks - len(questions)
            logger.warning(
                f"{provider} returned {len(questions)} of {subject.marks} questions "
                f"for {subject.name}; padding {shortfall} placeholder(s)"
            )
            reason = f"{provider} returned only {len(questions)} of {subject.marks} questions"
            return questions + placeholder_questions(
                subject, category, reason, start=len(questions)
            )

        exhausted = ExhaustedRetriesError(subject.name, errors)
        logger.error(f"Using placeholder questions for {exhausted}")
        return placeholder_questions(subject, category, str(errors[-1]) if errors else str(exhausted))
