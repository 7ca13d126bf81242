"""Tests for completion parsing and schema validation."""

from __future__ import annotations

import json
import logging

import pytest

from brew_analyzer.errors import (
    ModelOutputNotJSON,
    ModelOutputSchemaViolation,
    ModelOutputTruncated,
)
from brew_analyzer.models.base import ModelCompletion
from brew_analyzer.services.result_parser import parse_completion, validate_payload


def _payload(**overrides):
    payload = {
        "extractionScore": 82,
        "visualFeedback": {
            "colorAnalysis": "even",
            "patternAnalysis": "none",
            "textureNotes": "smooth",
        },
        "channeling": False,
        "overExtraction": False,
        "aiSuggestions": "grind finer",
    }
    payload.update(overrides)
    return payload


def _completion(text: str, stop_reason: str | None = "end_turn") -> ModelCompletion:
    return ModelCompletion(text=text, model_id="stub", stop_reason=stop_reason)


def test_pure_json_is_copied_verbatim():
    result = parse_completion(_completion(json.dumps(_payload(channeling=True))))

    assert result.extraction_score == 82
    assert result.visual_feedback.color_analysis == "even"
    assert result.visual_feedback.pattern_analysis == "none"
    assert result.visual_feedback.texture_notes == "smooth"
    assert result.channeling is True
    assert result.over_extraction is False
    assert result.ai_suggestions == "grind finer"


def test_prose_wrapped_json_is_extracted():
    text = (
        'Sure! Here is the result: {"extractionScore":82,"visualFeedback":{"colorAnalysis":'
        '"even","patternAnalysis":"none","textureNotes":"smooth"},"channeling":false,'
        '"overExtraction":false,"aiSuggestions":"grind finer"} Hope this helps!'
    )
    result = parse_completion(_completion(text))

    assert result.extraction_score == 82
    assert result.channeling is False


def test_code_fenced_json_is_extracted():
    text = "```json\n" + json.dumps(_payload()) + "\n```"
    assert parse_completion(_completion(text)).ai_suggestions == "grind finer"


def test_stray_open_brace_in_prose_is_ignored():
    text = "Score format {0-100 as asked. Result: " + json.dumps(_payload())
    result = parse_completion(_completion(text))
    assert result.extraction_score == 82


def test_trailing_comma_object_is_not_json():
    text = json.dumps(_payload())[:-1] + ",}"
    with pytest.raises(ModelOutputNotJSON):
        parse_completion(_completion(text))


def test_no_json_object_fails():
    with pytest.raises(ModelOutputNotJSON):
        parse_completion(_completion("The photo is too blurry to evaluate."))


def test_balanced_but_invalid_json_fails_as_not_json():
    with pytest.raises(ModelOutputNotJSON):
        parse_completion(_completion("{extractionScore: 80}"))


def test_unterminated_object_is_truncation():
    text = json.dumps(_payload())[:60]
    with pytest.raises(ModelOutputTruncated):
        parse_completion(_completion(text, stop_reason="end_turn"))


def test_length_stop_with_unparsable_object_is_truncation():
    with pytest.raises(ModelOutputTruncated):
        parse_completion(_completion("{not json}", stop_reason="max_tokens"))


def test_missing_channeling_names_the_field():
    payload = _payload()
    del payload["channeling"]

    with pytest.raises(ModelOutputSchemaViolation) as excinfo:
        parse_completion(_completion(json.dumps(payload)))

    assert excinfo.value.field == "channeling"
    assert "channeling" in str(excinfo.value)


def test_missing_nested_field_names_the_path():
    payload = _payload(visualFeedback={"colorAnalysis": "even", "patternAnalysis": "none"})

    with pytest.raises(ModelOutputSchemaViolation) as excinfo:
        validate_payload(payload)

    assert excinfo.value.field == "visualFeedback.textureNotes"


@pytest.mark.parametrize(
    ("overrides", "field"),
    [
        ({"extractionScore": "82"}, "extractionScore"),
        ({"extractionScore": True}, "extractionScore"),
        ({"extractionScore": None}, "extractionScore"),
        ({"channeling": "false"}, "channeling"),
        ({"overExtraction": 0}, "overExtraction"),
        ({"aiSuggestions": ["grind finer"]}, "aiSuggestions"),
        ({"visualFeedback": "looks fine"}, "visualFeedback"),
        (
            {
                "visualFeedback": {
                    "colorAnalysis": {"tone": "dark"},
                    "patternAnalysis": "none",
                    "textureNotes": "smooth",
                }
            },
            "visualFeedback.colorAnalysis",
        ),
    ],
)
def test_mistyped_fields_are_rejected(overrides, field):
    with pytest.raises(ModelOutputSchemaViolation) as excinfo:
        validate_payload(_payload(**overrides))
    assert excinfo.value.field == field


def test_non_finite_score_is_rejected():
    with pytest.raises(ModelOutputSchemaViolation):
        parse_completion(_completion(json.dumps(_payload()).replace("82", "NaN")))


@pytest.mark.parametrize(("raw", "expected"), [(130, 100.0), (-5, 0.0), (99.5, 99.5)])
def test_score_is_clamped(raw, expected):
    assert validate_payload(_payload(extractionScore=raw)).extraction_score == expected


def test_clamping_is_logged(caplog):
    with caplog.at_level(logging.WARNING, logger="brew_analyzer.services.result_parser"):
        validate_payload(_payload(extractionScore=150))
    assert "Clamped extractionScore" in caplog.text


def test_extra_fields_are_ignored():
    result = validate_payload(_payload(confidence="high"))
    assert "confidence" not in result.as_dict()


def test_as_dict_uses_wire_names():
    assert validate_payload(_payload()).as_dict() == {
        "extractionScore": 82.0,
        "visualFeedback": {
            "colorAnalysis": "even",
            "patternAnalysis": "none",
            "textureNotes": "smooth",
        },
        "channeling": False,
        "overExtraction": False,
        "aiSuggestions": "grind finer",
    }


def test_results_are_immutable():
    result = validate_payload(_payload())
    with pytest.raises(Exception):
        result.channeling = True
