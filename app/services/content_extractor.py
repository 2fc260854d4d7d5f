"""Pull the JSON payload out of free-form provider output.

Providers are asked for a bare JSON array but regularly wrap it in prose or
markdown code fences. Extraction takes the widest ``[{ ... }]`` span,
otherwise the body of a fenced block, otherwise the text itself. Anything
else fails in JSON parsing.
"""

import json
import re
from typing import Any

from app.services.errors import MalformedResponseError

# Greedy: from the first "[{" to the last "}]" in the text
_ARRAY_PATTERN = re.compile(r"\[\s*\{.*\}\s*\]", re.DOTALL)
_FENCE_PATTERN = re.compile(r"```[a-zA-Z0-9_-]*\s*\n?(.*?)```", re.DOTALL)


def extract(raw_text: str) -> str:
    """Return the JSON text embedded in ``raw_text``.

    Args:
        raw_text: Provider output, possibly with prose or code fences

    Returns:
        The array literal if one is found, else the body of the first fenced
        code block, else the trimmed input unchanged.
    """
    match = _ARRAY_PATTERN.search(raw_text)
    if match:
        return match.group(0)

    fenced = _FENCE_PATTERN.search(raw_text)
    if fenced:
        return fenced.group(1).strip()

    return raw_text.strip()


def parse_questions_json(raw_text: str) -> Any:
    """Extract and decode the JSON payload of a provider response.

    Raises:
        MalformedResponseError: If the output is empty or not valid JSON
    """
    if not raw_text or not raw_text.strip():
        raise MalformedResponseError("Provider returned empty content")

    json_text = extract(raw_text)
    try:
        return json.loads(json_text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(
            f"Provider output is not valid JSON ({e.msg} at position {e.pos}): "
            f"{json_text[:120]!r}"
        ) from e
    except RecursionError as e:
        raise MalformedResponseError(
            f"Provider output nests too deeply to decode ({len(json_text)} chars)"
        ) from e
