"""Pydantic models for paper generation requests and progress events."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubjectRequest(BaseModel):
    """One subject to generate: its name, target question count and topics."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Subject name, e.g. 'Mathematics'")
    marks: int = Field(..., ge=0, description="Number of questions to generate")
    topics: List[str] = Field(default_factory=list, description="Topics to cover, in order")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Subject name must not be blank")
        return v.strip()

    def topic_at(self, index: int) -> str:
        """Topic for the index-th question, cycling; the subject name when no topics are given."""
        if not self.topics:
            return self.name
        return self.topics[index % len(self.topics)]


class GenerateRequest(BaseModel):
    """Request body for POST /api/generate."""

    model_config = ConfigDict(populate_by_name=True)

    technical_subjects: List[SubjectRequest] = Field(
        default_factory=list, alias="technicalSubjects"
    )
    non_technical_subjects: List[SubjectRequest] = Field(
        default_factory=list, alias="nonTechnicalSubjects"
    )


class GenerationProgressEvent(BaseModel):
    """One line of the NDJSON progress stream."""

    model_config = ConfigDict(populate_by_name=True)

    progress: float = Field(default=0.0, ge=0, le=100)
    subject: Optional[str] = Field(default=None, description="Human-readable status line")
    status: Optional[Literal["saving", "complete"]] = None
    error: Optional[str] = None
    paper_id: Optional[str] = Field(default=None, alias="paperId")

    def to_ndjson(self) -> str:
        """Serialize as a single newline-terminated JSON line."""
        return self.model_dump_json(by_alias=True, exclude_none=True) + "\n"
