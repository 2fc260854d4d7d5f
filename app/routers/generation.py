"""
Question paper generation API endpoints.

``POST /api/generate`` streams newline-delimited JSON progress events while
the paper is generated and saved. The stream always ends with either a
``complete`` event carrying the paper id or a single ``error`` event.
"""

import logging
from typing import AsyncIterator, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from pydantic import ValidationError

from app.config import get_generation_config
from app.db.question_papers import SupabaseQuestionPaperStore
from app.db.supabase_client import get_supabase_client
from app.middleware.rate_limit import RATE_LIMITS, get_limiter
from app.models.generation import GenerateRequest, GenerationProgressEvent, SubjectRequest
from app.services.paper_orchestrator import PaperOrchestrator
from app.services.subject_catalog import default_generate_request

router = APIRouter(prefix="/api", tags=["generation"])
limiter = get_limiter()
logger = logging.getLogger(__name__)

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def build_orchestrator() -> PaperOrchestrator:
    """Build a fresh orchestrator wired to the Supabase question paper store."""
    store = SupabaseQuestionPaperStore(get_supabase_client())
    return PaperOrchestrator(get_generation_config(), store)


def _describe_validation_error(error: ValidationError) -> str:
    parts = []
    for err in error.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "body"
        parts.append(f"{location}: {err.get('msg', 'invalid')}")
    return "Invalid request body: " + "; ".join(parts)


async def _single_event(event: GenerationProgressEvent) -> AsyncIterator[str]:
    yield event.to_ndjson()


async def _event_lines(events: AsyncIterator[GenerationProgressEvent]) -> AsyncIterator[str]:
    async for event in events:
        yield event.to_ndjson()


@router.post("/generate", response_model=None)
@limiter.limit(RATE_LIMITS["generate"])  # type: ignore[untyped-decorator]
async def generate_paper(request: Request) -> StreamingResponse:
    """
    Generate a question paper and stream progress.

    Body: ``{"technicalSubjects": [...], "nonTechnicalSubjects": [...]}``,
    each subject ``{"name", "marks", "topics"}``.

    Returns:
        200: NDJSON stream of progress events. A malformed body produces a
        single error event instead of a 4xx so the client has one code path.
    """
    try:
        payload = await request.json()
        body = GenerateRequest.model_validate(payload)
    except ValidationError as e:
        message = _describe_validation_error(e)
        logger.warning(message)
        return StreamingResponse(
            _single_event(GenerationProgressEvent(error=message)),
            media_type=NDJSON_MEDIA_TYPE,
        )
    except (ValueError, UnicodeDecodeError):
        logger.warning("Generate request body is not valid JSON")
        return StreamingResponse(
            _single_event(GenerationProgressEvent(error="Request body must be valid JSON")),
            media_type=NDJSON_MEDIA_TYPE,
        )

    subject_count = len(body.technical_subjects) + len(body.non_technical_subjects)
    orchestrator = build_orchestrator()
    events = orchestrator.run(body.technical_subjects, body.non_technical_subjects)
    return StreamingResponse(
        _event_lines(events),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"X-Subject-Count": str(subject_count)},
    )


@router.get("/subjects/defaults", response_model=None)
async def default_subjects() -> Dict[str, List[Dict[str, object]]]:
    """Default subject distribution, in the same shape POST /api/generate accepts."""
    request = default_generate_request()

    def dump(subjects: List[SubjectRequest]) -> List[Dict[str, object]]:
        return [s.model_dump() for s in subjects]

    return {
        "technicalSubjects": dump(request.technical_subjects),
        "nonTechnicalSubjects": dump(request.non_technical_subjects),
    }
