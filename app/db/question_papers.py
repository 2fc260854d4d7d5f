"""Database functions for question papers and their questions.

A paper is stored as one ``question_papers`` row plus one ``questions`` row
per question, keyed by ``paper_id`` with a 1-based ``question_number``.
``create_question_paper`` either stores both or neither: if the question
insert fails the paper row is deleted again before the error is raised.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import UUID

from supabase import Client

from app.models.question import (
    CanonicalQuestion,
    PaperWithQuestions,
    QuestionPaper,
    StoredQuestion,
)
from app.services.errors import PersistenceError

logger = logging.getLogger(__name__)

PAPERS_TABLE = "question_papers"
QUESTIONS_TABLE = "questions"


def _validate_uuid(paper_id: str) -> None:
    try:
        UUID(paper_id)
    except ValueError:
        raise ValueError(f"Invalid UUID format: {paper_id}")


def _paper_metadata(questions: Sequence[CanonicalQuestion]) -> Dict[str, Any]:
    technical = sum(1 for q in questions if q.category == "technical")
    return {
        "technical_count": technical,
        "non_technical_count": len(questions) - technical,
    }


async def _delete_paper_row(client: Client, paper_id: str) -> None:
    await asyncio.to_thread(
        lambda: client.table(PAPERS_TABLE).delete().eq("id", paper_id).execute()
    )


async def create_question_paper(
    client: Client,
    title: str,
    questions: Sequence[CanonicalQuestion],
    total_marks: int = 100,
    duration_minutes: int = 90,
) -> QuestionPaper:
    """Insert a paper and all of its questions.

    Args:
        client: Supabase client instance
        title: Human-readable paper title
        questions: Questions in paper order; numbered 1..N
        total_marks: Total marks recorded on the paper
        duration_minutes: Exam duration recorded on the paper

    Returns:
        QuestionPaper: The stored paper record

    Raises:
        PersistenceError: If either insert fails. No paper row is left behind.
    """
    paper_record = {
        "title": title,
        "total_marks": total_marks,
        "duration_minutes": duration_minutes,
        "metadata": _paper_metadata(questions),
    }

    try:
        response = await asyncio.to_thread(
            lambda: client.table(PAPERS_TABLE).insert(paper_record).execute()
        )
    except Exception as e:
        raise PersistenceError(f"Failed to insert question paper: {str(e)}") from e
    if not response.data:
        raise PersistenceError("Failed to insert question paper: insert returned no data")

    paper = QuestionPaper.model_validate(response.data[0])
    if not questions:
        return paper

    question_records = [
        {
            **question.model_dump(mode="json"),
            "paper_id": paper.id,
            "question_number": index + 1,
        }
        for index, question in enumerate(questions)
    ]

    try:
        await asyncio.to_thread(
            lambda: client.table(QUESTIONS_TABLE).insert(question_records).execute()
        )
    except Exception as e:
        logger.error(f"Question insert failed for paper {paper.id}; removing paper row")
        try:
            await _delete_paper_row(client, paper.id)
        except Exception as cleanup_error:
            logger.error(
                f"Rollback of paper {paper.id} failed: {cleanup_error}", exc_info=True
            )
        raise PersistenceError(f"Failed to insert questions: {str(e)}") from e

    return paper


async def get_question_paper(client: Client, paper_id: str) -> Optional[PaperWithQuestions]:
    """Retrieve a paper and its questions ordered by question_number.

    Raises:
        ValueError: If paper_id is not a valid UUID
        PersistenceError: If a database query fails
    """
    _validate_uuid(paper_id)

    try:
        paper_response = await asyncio.to_thread(
            lambda: client.table(PAPERS_TABLE).select("*").eq("id", paper_id).execute()
        )
    except Exception as e:
        raise PersistenceError(f"Failed to fetch question paper: {str(e)}") from e
    if not paper_response.data:
        return None

    try:
        questions_response = await asyncio.to_thread(
            lambda: client.table(QUESTIONS_TABLE)
            .select("*")
            .eq("paper_id", paper_id)
            .order("question_number", desc=False)
            .execute()
        )
    except Exception as e:
        raise PersistenceError(f"Failed to fetch questions: {str(e)}") from e

    return PaperWithQuestions(
        paper=QuestionPaper.model_validate(paper_response.data[0]),
        questions=[StoredQuestion.model_validate(row) for row in questions_response.data or []],
    )


async def list_question_papers(client: Client, limit: int = 50) -> List[QuestionPaper]:
    """List papers, newest first."""
    try:
        response = await asyncio.to_thread(
            lambda: client.table(PAPERS_TABLE)
            .select("*")
            .order("created_at", desc=True)
            .limit(limit)
            .execute()
        )
    except Exception as e:
        raise PersistenceError(f"Failed to list question papers: {str(e)}") from e
    return [QuestionPaper.model_validate(row) for row in response.data or []]


async def delete_question_paper(client: Client, paper_id: str) -> bool:
    """Delete a paper and its questions.

    Returns:
        bool: True if a paper row was deleted, False if it did not exist

    Raises:
        ValueError: If paper_id is not a valid UUID
        PersistenceError: If a delete fails
    """
    _validate_uuid(paper_id)

    try:
        await asyncio.to_thread(
            lambda: client.table(QUESTIONS_TABLE).delete().eq("paper_id", paper_id).execute()
        )
        response = await asyncio.to_thread(
            lambda: client.table(PAPERS_TABLE).delete().eq("id", paper_id).execute()
        )
    except Exception as e:
        raise PersistenceError(f"Failed to delete question paper: {str(e)}") from e
    return bool(response.data)


class QuestionPaperStore(Protocol):
    """What the paper orchestrator needs from persistence."""

    async def save_paper(
        self,
        title: str,
        questions: Sequence[CanonicalQuestion],
        total_marks: int,
        duration_minutes: int,
    ) -> QuestionPaper: ...

    async def get_paper(self, paper_id: str) -> Optional[PaperWithQuestions]: ...


class SupabaseQuestionPaperStore:
    """QuestionPaperStore backed by the Supabase question tables."""

    def __init__(self, client: Client):
        self.client = client

    async def save_paper(
        self,
        title: str,
        questions: Sequence[CanonicalQuestion],
        total_marks: int,
        duration_minutes: int,
    ) -> QuestionPaper:
        return await create_question_paper(
            self.client, title, questions, total_marks, duration_minutes
        )

    async def get_paper(self, paper_id: str) -> Optional[PaperWithQuestions]:
        return await get_question_paper(self.client, paper_id)
