import io
import json
from types import SimpleNamespace

import boto3
import pytest
from botocore.exceptions import EndpointConnectionError, ReadTimeoutError
from botocore.response import StreamingBody
from botocore.stub import Stubber

from brew_analyzer.config import AppConfig
from brew_analyzer.errors import ModelResponseMalformed, ModelUnavailable, Timeout
from brew_analyzer.models.base import EncodedImage, MediaType
from brew_analyzer.models.bedrock import BedrockVisionModel


def _client():
    return boto3.client(
        "bedrock-runtime",
        region_name="us-west-2",
        aws_access_key_id="testing",
        aws_secret_access_key="testing",
    )


def _envelope(text: str, stop_reason: str = "end_turn") -> bytes:
    return json.dumps(
        {
            "output": {"message": {"role": "assistant", "content": [{"text": text}]}},
            "stopReason": stop_reason,
            "usage": {"inputTokens": 1200, "outputTokens": 150},
        }
    ).encode("utf-8")


def _image() -> EncodedImage:
    return EncodedImage(data="aGVsbG8=", media_type=MediaType.PNG)


def test_build_body_uses_nova_message_format():
    model = BedrockVisionModel(AppConfig(max_tokens=2048))
    body = model.build_body(_image(), "Analyze this espresso coffee brew photo.")

    content = body["messages"][0]["content"]
    assert body["messages"][0]["role"] == "user"
    assert content[0] == {"image": {"format": "png", "source": {"bytes": "aGVsbG8="}}}
    assert content[1] == {"text": "Analyze this espresso coffee brew photo."}
    assert body["inferenceConfig"] == {"max_new_tokens": 2048}


def test_build_body_passes_temperature_when_configured():
    model = BedrockVisionModel(AppConfig(temperature=0.0))
    body = model.build_body(_image(), "prompt")
    assert body["inferenceConfig"]["temperature"] == 0.0


def test_invoke_returns_completion():
    client = _client()
    config = AppConfig(model_id="us.amazon.nova-lite-v1:0")
    model = BedrockVisionModel(config, client=client)
    model.load()

    with Stubber(client) as stubber:
        raw = _envelope('{"extractionScore": 70}')
        stubber.add_response(
            "invoke_model",
            {"body": StreamingBody(io.BytesIO(raw), len(raw)), "contentType": "application/json"},
        )
        completion = model.invoke(_image(), "prompt")

    assert completion.text == '{"extractionScore": 70}'
    assert completion.model_id == "us.amazon.nova-lite-v1:0"
    assert completion.stop_reason == "end_turn"
    assert completion.truncated is False
    assert completion.input_tokens == 1200
    assert completion.output_tokens == 150


def test_invoke_throttling_is_model_unavailable():
    client = _client()
    model = BedrockVisionModel(AppConfig(), client=client)

    with Stubber(client) as stubber:
        stubber.add_client_error(
            "invoke_model", service_error_code="ThrottlingException", http_status_code=429
        )
        with pytest.raises(ModelUnavailable):
            model.invoke(_image(), "prompt")


def test_invoke_model_timeout_code_is_timeout():
    client = _client()
    model = BedrockVisionModel(AppConfig(), client=client)

    with Stubber(client) as stubber:
        stubber.add_client_error(
            "invoke_model", service_error_code="ModelTimeoutException", http_status_code=408
        )
        with pytest.raises(Timeout) as excinfo:
            model.invoke(_image(), "prompt")

    assert excinfo.value.operation == "model"


def test_invoke_read_timeout_is_timeout():
    def invoke_model(**kwargs):
        raise ReadTimeoutError(endpoint_url="https://bedrock.example")

    model = BedrockVisionModel(
        AppConfig(), client=SimpleNamespace(invoke_model=invoke_model)
    )
    with pytest.raises(Timeout):
        model.invoke(_image(), "prompt")


def test_invoke_connection_error_is_model_unavailable():
    def invoke_model(**kwargs):
        raise EndpointConnectionError(endpoint_url="https://bedrock.example")

    model = BedrockVisionModel(
        AppConfig(), client=SimpleNamespace(invoke_model=invoke_model)
    )
    with pytest.raises(ModelUnavailable):
        model.invoke(_image(), "prompt")


def test_decode_response_reports_max_tokens_stop():
    model = BedrockVisionModel(AppConfig())
    completion = model.decode_response(_envelope('{"extractionScore": 7', "max_tokens"))
    assert completion.truncated is True


@pytest.mark.parametrize(
    "raw",
    [
        b"not json",
        b"[]",
        json.dumps({"output": {}}).encode(),
        json.dumps({"output": {"message": {"content": []}}}).encode(),
        json.dumps({"output": {"message": {"content": [{"text": 42}]}}}).encode(),
    ],
)
def test_decode_response_rejects_malformed_envelopes(raw):
    model = BedrockVisionModel(AppConfig())
    with pytest.raises(ModelResponseMalformed):
        model.decode_response(raw)


def test_load_builds_client_from_config(monkeypatch):
    captured = {}

    def fake_client(service, **kwargs):
        captured["service"] = service
        captured.update(kwargs)
        return SimpleNamespace()

    monkeypatch.setattr("brew_analyzer.models.bedrock.boto3.client", fake_client)
    model = BedrockVisionModel(
        AppConfig(region="eu-central-1", endpoint_url="https://bedrock.internal", model_timeout=12)
    )
    model.load()

    assert captured["service"] == "bedrock-runtime"
    assert captured["endpoint_url"] == "https://bedrock.internal"
    assert captured["config"].region_name == "eu-central-1"
    assert captured["config"].read_timeout == 12
