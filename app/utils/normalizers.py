"""Normalize subject names so provider routing tolerates spelling variants."""

import re

SUBJECT_MAPPINGS: dict[str, str] = {
    "maths": "Mathematics",
    "math": "Mathematics",
    "mathematics": "Mathematics",
    "quantitative aptitude": "Mathematics",
    "reasoning": "Reasoning",
    "logical reasoning": "Reasoning",
    "general intelligence and reasoning": "Reasoning",
    "english": "English Language",
    "english language": "English Language",
    "gk": "General Studies/GK",
    "general studies": "General Studies/GK",
    "general awareness": "General Studies/GK",
    "general studies/gk": "General Studies/GK",
    "c": "C/C++ Programming",
    "c++": "C/C++ Programming",
    "c/c++": "C/C++ Programming",
    "c/c++ programming": "C/C++ Programming",
    "data structures": "Data Structures",
    "dsa": "Data Structures",
    "dbms": "DBMS & SQL",
    "sql": "DBMS & SQL",
    "dbms & sql": "DBMS & SQL",
    "dbms and sql": "DBMS & SQL",
    "os": "Operating Systems",
    "operating system": "Operating Systems",
    "operating systems": "Operating Systems",
    "cn": "Computer Networks",
    "networks": "Computer Networks",
    "computer networks": "Computer Networks",
    "web": "Web Technologies",
    "web technologies": "Web Technologies",
    "software engineering": "Software Engineering",
    "se": "Software Engineering",
}


def normalize_subject_name(subject: str) -> str:
    """Normalize subject names for matching. Unknown subjects preserved with title case."""
    if not subject or not subject.strip():
        return subject.strip() if subject else ""
    key = re.sub(r"\s+", " ", subject.strip().lower())
    return SUBJECT_MAPPINGS.get(key, subject.strip().title())
