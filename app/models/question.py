"""Pydantic models for canonical questions and stored question papers."""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

AnswerLetter = Literal["a", "b", "c", "d"]
Category = Literal["technical", "non_technical"]
Difficulty = Literal["easy", "medium", "hard"]

ANSWER_LETTERS: tuple[AnswerLetter, ...] = ("a", "b", "c", "d")


class QuestionOptions(BaseModel):
    """The four answer options, always keyed a-d."""
    a: str = ""
    b: str = ""
    c: str = ""
    d: str = ""


class CanonicalQuestion(BaseModel):
    """A multiple-choice question in the one shape persistence accepts."""
    question_text: str = Field(..., description="Question stem")
    options: QuestionOptions
    correct_answer: AnswerLetter
    explanation: str = Field(..., description="Why the correct answer is correct")
    category: Category
    subject: str
    difficulty: Difficulty = "medium"
    marks: int = Field(default=1, ge=0)


class StoredQuestion(CanonicalQuestion):
    """A canonical question as read back from the questions table."""
    id: Optional[str] = None
    paper_id: str
    question_number: int = Field(..., ge=1)

    model_config = {"from_attributes": True}


class QuestionPaper(BaseModel):
    """A saved question paper record."""
    id: str
    title: str
    created_at: Optional[datetime] = None
    total_marks: int
    duration_minutes: int
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = {"from_attributes": True}


class PaperWithQuestions(BaseModel):
    """A paper with its questions ordered by question_number."""
    paper: QuestionPaper
    questions: List[StoredQuestion] = Field(default_factory=list)
