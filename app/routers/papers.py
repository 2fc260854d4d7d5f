"""Question papers API: list, detail with questions, delete."""

import logging

from fastapi import APIRouter, HTTPException, Query, Request, Response, status

from app.db.question_papers import (
    delete_question_paper,
    get_question_paper,
    list_question_papers,
)
from app.db.supabase_client import get_supabase_client
from app.middleware.rate_limit import limit_papers
from app.services.errors import PersistenceError

router = APIRouter(prefix="/api/papers", tags=["papers"])
logger = logging.getLogger(__name__)


@router.get("", response_model=None)
@limit_papers
async def list_papers_endpoint(
    request: Request,
    limit: int = Query(50, ge=1, le=100),
) -> dict:
    """List generated papers, newest first."""
    client = get_supabase_client()
    try:
        papers = await list_question_papers(client, limit=limit)
    except PersistenceError as e:
        logger.error(str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return {
        "items": [paper.model_dump(mode="json") for paper in papers],
        "limit": limit,
    }


@router.get("/{paper_id}", response_model=None)
@limit_papers
async def get_paper_endpoint(request: Request, paper_id: str) -> dict:
    """Get a paper with its questions ordered by question number."""
    client = get_supabase_client()
    try:
        result = await get_question_paper(client, paper_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError as e:
        logger.error(str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question paper not found")
    return result.model_dump(mode="json")


@router.delete("/{paper_id}", status_code=status.HTTP_204_NO_CONTENT, response_model=None)
@limit_papers
async def delete_paper_endpoint(request: Request, paper_id: str) -> Response:
    """Delete a paper and its questions."""
    client = get_supabase_client()
    try:
        deleted = await delete_question_paper(client, paper_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except PersistenceError as e:
        logger.error(str(e))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question paper not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
