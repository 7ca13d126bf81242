"""Vision model integration via Amazon Bedrock."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

from ..config import AppConfig
from ..errors import ModelError, ModelResponseMalformed, ModelUnavailable, Timeout
from .base import EncodedImage, ModelCompletion, ModelInfo
from .registry import ModelRegistry

logger = logging.getLogger(__name__)

_TIMEOUT_CODES = {"ModelTimeoutException"}


class BedrockVisionModel:
    """Calls a Bedrock multimodal model using the Nova messages format."""

    def __init__(self, config: AppConfig | None = None, *, client: Any | None = None) -> None:
        self._config = config or AppConfig()
        self._client = client
        self._info = ModelInfo(
            identifier="bedrock",
            display_name="Amazon Bedrock",
            description="Multimodal models such as Amazon Nova served by Amazon Bedrock.",
            tags=("remote", "aws", "bedrock", "vision"),
        )

    def info(self) -> ModelInfo:
        return self._info

    def load(self) -> None:
        if self._client is not None:
            return
        botocore_config = Config(
            region_name=self._config.region,
            connect_timeout=self._config.model_timeout,
            read_timeout=self._config.model_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        self._client = boto3.client(
            "bedrock-runtime",
            endpoint_url=self._config.endpoint_url,
            config=botocore_config,
        )

    # ----- Request construction -------------------------------------------

    def build_body(self, image: EncodedImage, prompt: str) -> dict[str, Any]:
        inference_config: dict[str, Any] = {"max_new_tokens": self._config.max_tokens}
        if self._config.temperature is not None:
            inference_config["temperature"] = self._config.temperature
        return {
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "image": {
                                "format": image.media_type.format_name,
                                "source": {"bytes": image.data},
                            }
                        },
                        {"text": prompt},
                    ],
                }
            ],
            "inferenceConfig": inference_config,
        }

    # ----- Dispatch ---------------------------------------------------------

    def invoke(self, image: EncodedImage, prompt: str) -> ModelCompletion:
        if self._client is None:
            raise ModelError("Bedrock client not initialised.")
        model_id = self._config.model_id
        started = time.monotonic()
        try:
            response = self._client.invoke_model(
                modelId=model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(self.build_body(image, prompt)),
            )
            raw_body = response["body"].read()
        except (ConnectTimeoutError, ReadTimeoutError) as exc:
            raise Timeout(
                f"Bedrock request timed out after {self._config.model_timeout}s.",
                operation="model",
            ) from exc
        except ClientError as exc:
            code = (exc.response.get("Error") or {}).get("Code")
            if code in _TIMEOUT_CODES:
                raise Timeout(f"Bedrock model timed out: {exc}", operation="model") from exc
            raise ModelUnavailable(f"Bedrock rejected invocation of {model_id}: {code}") from exc
        except BotoCoreError as exc:
            raise ModelUnavailable(f"Failed to contact Bedrock: {exc}") from exc
        latency_ms = round((time.monotonic() - started) * 1000, 2)

        return self.decode_response(raw_body, latency_ms=latency_ms)

    # ----- Response handling -------------------------------------------------

    def decode_response(self, raw_body: bytes, *, latency_ms: float = 0.0) -> ModelCompletion:
        """Pull the completion text out of a Nova response envelope."""
        try:
            payload = json.loads(raw_body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ModelResponseMalformed("Bedrock response body is not JSON.") from exc
        if not isinstance(payload, dict):
            raise ModelResponseMalformed("Bedrock response body is not an object.")

        try:
            text = payload["output"]["message"]["content"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ModelResponseMalformed(
                "Bedrock response is missing output.message.content[0].text."
            ) from exc
        if not isinstance(text, str):
            raise ModelResponseMalformed("Bedrock completion text is not a string.")

        usage = payload.get("usage")
        if not isinstance(usage, dict):
            usage = {}
        return ModelCompletion(
            text=text,
            model_id=self._config.model_id,
            stop_reason=payload.get("stopReason"),
            input_tokens=int(usage.get("inputTokens") or 0),
            output_tokens=int(usage.get("outputTokens") or 0),
            latency_ms=latency_ms,
        )


def _register() -> None:
    ModelRegistry.register("bedrock", lambda config: BedrockVisionModel(config))


_register()
