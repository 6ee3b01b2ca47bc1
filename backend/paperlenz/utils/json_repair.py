"""Helpers that turn a language model's text reply into an analysis dict."""

import json
import re
from typing import Any

from paperlenz.core.exceptions import InvalidResponseFormatError
from paperlenz.schemas.schemas import QUALITY_COMPONENTS

_LEADING_FENCE = re.compile(r"^```[\w+-]*")
_TRAILING_FENCE = "```"


def clean_json_response(text: str) -> str:
    """Extract the JSON object text from a model reply.

    Slices from the first ``{`` to the last ``}`` (dropping prose before and
    after), then strips any markdown fence left at either end. Braces inside
    string literals are not tracked, so a stray ``}`` in trailing prose widens
    the slice and the decode fails later.
    """
    cleaned = (text or "").strip()

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace != -1 and first_brace < last_brace:
        cleaned = cleaned[first_brace:last_brace + 1]

    match = _LEADING_FENCE.match(cleaned)
    if match:
        cleaned = cleaned[match.end():]
    if cleaned.endswith(_TRAILING_FENCE):
        cleaned = cleaned[: -len(_TRAILING_FENCE)]

    return cleaned.strip()


def parse_json_response(text: str) -> dict[str, Any]:
    """Sanitize ``text`` and decode it as a JSON object."""
    cleaned = clean_json_response(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise InvalidResponseFormatError(
            f"Invalid response format from AI service: {e.msg}",
            raw_response=text,
        ) from e
    if not isinstance(data, dict):
        raise InvalidResponseFormatError(
            "Invalid response format from AI service: expected a JSON object",
            raw_response=text,
        )
    return data


def reconcile_quality_score(analysis: dict[str, Any]) -> dict[str, Any]:
    """Overwrite ``paper_quality_score.total`` with the sum of its components.

    Missing or null components count as zero. The dict is updated in place
    and returned.
    """
    score = analysis.get("paper_quality_score")
    if isinstance(score, dict):
        score["total"] = sum(_as_number(score.get(name)) for name in QUALITY_COMPONENTS)
    return analysis


def _as_number(value: Any) -> int | float:
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            try:
                return float(value.strip())
            except ValueError:
                return 0
    return 0
