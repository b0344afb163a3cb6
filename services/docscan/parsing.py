"""Turn raw model text into a JSON object.

Handles markdown fences, <think>...</think> blocks and preamble text.
"""

import json
import logging
import re

logger = logging.getLogger(__name__)

_THINK_RE = re.compile(r"<think>.*?</think>", re.DOTALL)
_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class MalformedResponseError(ValueError):
    """Model text could not be parsed as a JSON object."""


def strip_formatting(raw: str | None) -> str:
    """Remove reasoning blocks and code fences, then trim whitespace."""
    if not raw:
        return ""
    cleaned = _THINK_RE.sub("", raw)
    cleaned = _FENCE_RE.sub("", cleaned)
    return cleaned.strip()


def parse_json_object(raw: str | None) -> dict | None:
    """Parse the model's response into a dict.

    Returns None when nothing is left after stripping. Raises
    MalformedResponseError for anything that is not a JSON object.
    """
    cleaned = strip_formatting(raw)
    if not cleaned:
        return None

    try:
        result = json.loads(cleaned)
    except json.JSONDecodeError:
        result = _parse_outer_object(cleaned)

    if not isinstance(result, dict):
        logger.warning("Model response is not a JSON object: %s", cleaned[:200])
        raise MalformedResponseError("Model response is not a JSON object")
    return result


def _parse_outer_object(cleaned: str):
    """Fall back to the outermost {...} span, e.g. when the model adds a preamble."""
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end <= start:
        logger.warning("Could not parse JSON from model response: %s", cleaned[:200])
        raise MalformedResponseError("Model response is not valid JSON")
    try:
        return json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        logger.warning("Could not parse JSON from model response: %s", cleaned[:200])
        raise MalformedResponseError(f"Model response is not valid JSON: {e.msg}") from e
