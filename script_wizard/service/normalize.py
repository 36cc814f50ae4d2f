"""Collapse the service's response envelopes into one result type."""

import json
from typing import Any

from loguru import logger
from pydantic import ValidationError

from ..models import GenerationResult, ScriptResult


def parse_body(text: str) -> Any:
    """Parse a response body as JSON, falling back to the raw text."""
    try:
        return json.loads(text)
    except ValueError:
        return text


def normalize_response(data: Any) -> Any:
    """Unwrap the envelope the service used for this phase.

    - a bare string passes through
    - ``{"result": "..."}`` yields the string
    - ``{"result": {"content": "..."}}`` yields the content string
    - ``{"result": {...}}`` yields the inner object
    - anything else passes through unchanged
    """
    if isinstance(data, str):
        return data
    if isinstance(data, dict) and "result" in data:
        inner = data["result"]
        if isinstance(inner, str):
            return inner
        if isinstance(inner, dict):
            content = inner.get("content")
            if isinstance(content, str):
                return content
            return inner
    return data


def coerce_result(data: Any) -> GenerationResult:
    """Turn a normalized payload into a text or structured result."""
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        try:
            return ScriptResult.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Structured result did not match the script schema: {e.error_count()} errors")
    return json.dumps(data, ensure_ascii=False)
