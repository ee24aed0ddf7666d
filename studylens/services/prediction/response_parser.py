"""Parsing and strict validation of generated prediction JSON.

Generated text is untrusted.  The parser locates the JSON object (fenced
block first, then the outermost brace pair, then the raw text) and then
validates it against :class:`~studylens.models.prediction.PredictionPayload`.
Any failure, whether malformed JSON, a missing field or an out-of-range
value, raises :class:`PredictionParseError`; nothing loosely-shaped ever
reaches an Analysis record.
"""

from __future__ import annotations

import json
import re

import pydantic

from studylens.models.prediction import PredictionPayload
from studylens.utils.errors import PredictionParseError

# Matches markdown code fences (```json ... ``` or ``` ... ```) that LLMs
# wrap around their output despite instructions not to.
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def extract_json_text(response: str) -> str:
    """Return the substring of *response* most likely to be the JSON payload."""
    text = response.strip()

    fence_match = _JSON_FENCE_RE.search(text)
    if fence_match:
        return fence_match.group(1).strip()

    if not text.startswith(("{", "[")):
        brace_start = text.find("{")
        brace_end = text.rfind("}")
        if brace_start != -1 and brace_end > brace_start:
            return text[brace_start : brace_end + 1]
    return text


def parse_prediction(response: str, provider_name: str | None = None) -> PredictionPayload:
    """Parse and validate a generated prediction.

    A bare JSON array is accepted as a list of questions.

    Raises
    ------
    PredictionParseError
        If no JSON can be decoded or the decoded value fails validation.
    """
    text = extract_json_text(response)
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise PredictionParseError(
            message=f"Generated output is not valid JSON: {exc.msg}",
            provider_name=provider_name,
        ) from exc

    if isinstance(parsed, list):
        parsed = {"generated_questions": parsed}
    if not isinstance(parsed, dict):
        raise PredictionParseError(
            message="Generated output is not a JSON object",
            provider_name=provider_name,
        )

    try:
        return PredictionPayload.model_validate(parsed)
    except pydantic.ValidationError as exc:
        raise PredictionParseError(
            message=f"Generated output failed validation ({exc.error_count()} errors)",
            provider_name=provider_name,
        ) from exc
