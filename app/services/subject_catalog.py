"""Default subject distribution for an RRB JE (IT) mock paper."""

from typing import List

from app.models.generation import GenerateRequest, SubjectRequest

DEFAULT_TECHNICAL_SUBJECTS: List[SubjectRequest] = [
    SubjectRequest(name="C/C++ Programming", marks=10, topics=["pointers", "arrays", "functions", "structures", "file handling", "OOP concepts"]),
    SubjectRequest(name="Data Structures", marks=8, topics=["arrays", "linked lists", "stacks", "queues", "trees", "sorting algorithms"]),
    SubjectRequest(name="DBMS & SQL", marks=10, topics=["normalization", "SQL queries", "joins", "transactions", "ACID properties", "ER diagrams"]),
    SubjectRequest(name="Operating Systems", marks=8, topics=["process management", "memory management", "file systems", "scheduling", "deadlocks"]),
    SubjectRequest(name="Computer Networks", marks=8, topics=["OSI model", "TCP/IP", "protocols", "IP addressing", "routing", "network security"]),
    SubjectRequest(name="Web Technologies", marks=8, topics=["HTML", "CSS", "JavaScript", "HTTP", "web servers", "security"]),
    SubjectRequest(name="Software Engineering", marks=8, topics=["SDLC", "testing", "agile", "design patterns", "UML diagrams"]),
]

DEFAULT_NON_TECHNICAL_SUBJECTS: List[SubjectRequest] = [
    SubjectRequest(name="Reasoning", marks=10, topics=["analogies", "coding-decoding", "series", "syllogism", "blood relations", "directions"]),
    SubjectRequest(name="Mathematics", marks=10, topics=["percentages", "profit-loss", "time-work", "algebra", "geometry", "number system"]),
    SubjectRequest(name="English Language", marks=10, topics=["grammar", "vocabulary", "comprehension", "error spotting", "sentence correction"]),
    SubjectRequest(name="General Studies/GK", marks=10, topics=["current affairs", "Indian history", "geography", "polity", "science facts"]),
]


def default_generate_request() -> GenerateRequest:
    """The standard 100-question paper layout."""
    return GenerateRequest(
        technical_subjects=list(DEFAULT_TECHNICAL_SUBJECTS),
        non_technical_subjects=list(DEFAULT_NON_TECHNICAL_SUBJECTS),
    )
