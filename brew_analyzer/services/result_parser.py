"""Turns model completions into validated analysis results."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from ..errors import (
    ModelOutputNotJSON,
    ModelOutputSchemaViolation,
    ModelOutputTruncated,
)
from ..models.base import SCORE_MAX, SCORE_MIN, AnalysisResult, ModelCompletion
from ..utils.json_text import extract_json_object, strip_markdown

logger = logging.getLogger(__name__)

_PREVIEW_LENGTH = 200


def _preview(text: str) -> str:
    if len(text) <= _PREVIEW_LENGTH:
        return text
    return text[:_PREVIEW_LENGTH] + "..."


def parse_completion(completion: ModelCompletion) -> AnalysisResult:
    """Extract and validate the analysis object embedded in ``completion``."""
    cleaned = strip_markdown(completion.text)
    span = extract_json_object(cleaned)

    if span.value is None:
        if span.unterminated or (span.found_open_brace and completion.truncated):
            raise ModelOutputTruncated(
                f"Model output ended before the JSON object closed "
                f"(stop reason: {completion.stop_reason}): {_preview(cleaned)!r}"
            )
        raise ModelOutputNotJSON(f"Model returned non-JSON output: {_preview(cleaned)!r}")

    return validate_payload(span.value)


def validate_payload(payload: dict[str, Any]) -> AnalysisResult:
    """Validate a parsed object against the ``AnalysisResult`` shape.

    Types are checked strictly; an out-of-range ``extractionScore`` is clamped
    into [0, 100] rather than rejected.
    """
    try:
        result = AnalysisResult.model_validate(payload)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or "<root>"
        raise ModelOutputSchemaViolation(
            f"Model output field {field!r} is invalid: {error['msg']}",
            field=field,
        ) from exc

    raw_score = payload.get("extractionScore")
    if raw_score != result.extraction_score:
        logger.warning(
            "Clamped extractionScore %r into [%s, %s]", raw_score, SCORE_MIN, SCORE_MAX
        )
    return result
