"""Map provider-shaped question objects onto the canonical question schema.

Different providers and models drift on key names, option shapes and answer
formatting. Field lookups are driven by ``FIELD_RULES`` so supporting a new
quirk means adding a key name, not another branch. ``normalize`` is total:
every input yields at least one valid record.
"""

from typing import Any, Dict, List, Mapping, Optional, Tuple

from app.models.question import (
    ANSWER_LETTERS,
    AnswerLetter,
    CanonicalQuestion,
    Category,
    QuestionOptions,
)

# Canonical field -> candidate provider keys, highest priority first
FIELD_RULES: Dict[str, Tuple[str, ...]] = {
    "question_text": ("question_text", "question", "text"),
    "options": ("options",),
    "correct_answer": ("correct_answer", "answer"),
    "explanation": ("explanation", "reason"),
}

FIELD_DEFAULTS: Dict[str, str] = {
    "question_text": "Question text missing",
    "explanation": "No explanation provided.",
}

PLACEHOLDER_OPTIONS = QuestionOptions(a="A", b="B", c="C", d="D")

AI_DIFFICULTY = "medium"
MARKS_PER_QUESTION = 1


def _lookup(item: Mapping[str, Any], field: str) -> Optional[Any]:
    """First non-empty value among the candidate keys for ``field``."""
    for key in FIELD_RULES[field]:
        value = item.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _text(item: Mapping[str, Any], field: str) -> str:
    value = _lookup(item, field)
    if value is None:
        return FIELD_DEFAULTS[field]
    return value.strip() if isinstance(value, str) else str(value)


def _option_text(value: Any) -> str:
    if value is None:
        return ""
    return value.strip() if isinstance(value, str) else str(value)


def normalize_options(raw: Any) -> QuestionOptions:
    """Coerce a positional list or an a-d / A-D mapping into QuestionOptions."""
    if isinstance(raw, (list, tuple)):
        values = [_option_text(v) for v in list(raw)[:4]]
        values += [""] * (4 - len(values))
        return QuestionOptions(**dict(zip(ANSWER_LETTERS, values)))

    if isinstance(raw, Mapping):
        resolved = {}
        for letter in ANSWER_LETTERS:
            value = raw.get(letter)
            if value is None:
                value = raw.get(letter.upper())
            resolved[letter] = _option_text(value)
        return QuestionOptions(**resolved)

    return PLACEHOLDER_OPTIONS.model_copy()


def normalize_answer(raw: Any) -> AnswerLetter:
    """First of a/b/c/d contained in the lower-cased answer, else 'a'.

    This is a containment heuristic: "Option B" maps to "b", but free text
    such as "all of the above" also maps to "a".
    """
    if raw is None:
        return "a"
    answer = str(raw).strip().lower()
    for letter in ANSWER_LETTERS:
        if letter in answer:
            return letter
    return "a"


def _as_items(parsed: Any) -> List[Mapping[str, Any]]:
    if isinstance(parsed, Mapping):
        return [parsed]
    if isinstance(parsed, list) and parsed:
        return [item if isinstance(item, Mapping) else {} for item in parsed]
    return [{}]


def normalize_question(
    item: Mapping[str, Any], subject_name: str, category: Category
) -> CanonicalQuestion:
    """Normalize a single provider question object."""
    return CanonicalQuestion(
        question_text=_text(item, "question_text"),
        options=normalize_options(_lookup(item, "options")),
        correct_answer=normalize_answer(_lookup(item, "correct_answer")),
        explanation=_text(item, "explanation"),
        category=category,
        subject=subject_name,
        difficulty=AI_DIFFICULTY,
        marks=MARKS_PER_QUESTION,
    )


def normalize(
    parsed_json: Any, subject_name: str, category: Category
) -> List[CanonicalQuestion]:
    """Normalize parsed provider JSON into canonical questions.

    Args:
        parsed_json: Decoded provider payload (object, array, or anything else)
        subject_name: Subject the questions belong to
        category: "technical" or "non_technical"

    Returns:
        One CanonicalQuestion per input object (at least one).

    Re-normalizing canonical records is a fixed point only for the content
    fields. ``difficulty`` and ``marks`` are always reset to the AI defaults
    and ``subject`` and ``category`` to the arguments, so a stored "hard"
    question comes back as "medium".
    """
    return [
        normalize_question(item, subject_name, category)
        for item in _as_items(parsed_json)
    ]
