"""Vision model integration via a self-hosted Ollama server."""

from __future__ import annotations

import logging
import time
from typing import Any

import requests
from requests import Response, Session

from ..config import AppConfig
from ..errors import ModelError, ModelResponseMalformed, ModelUnavailable, Timeout
from .base import EncodedImage, ModelCompletion, ModelInfo
from .registry import ModelRegistry

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://127.0.0.1:11434"


class OllamaVisionModel:
    """Vision-language integration using the Ollama HTTP API."""

    def __init__(self, config: AppConfig | None = None) -> None:
        self._config = config or AppConfig()
        self._base_url = self._config.endpoint_url or DEFAULT_BASE_URL
        self._session: Session | None = None
        self._info = ModelInfo(
            identifier="ollama",
            display_name="Ollama Vision",
            description="Ollama-hosted multimodal models such as LLaVA or Qwen2.5-VL.",
            tags=("remote", "ollama", "vision", "http"),
        )

    def info(self) -> ModelInfo:
        return self._info

    def load(self) -> None:
        if self._session is None:
            self._session = requests.Session()

    def build_payload(self, image: EncodedImage, prompt: str) -> dict[str, Any]:
        options: dict[str, Any] = {"num_predict": self._config.max_tokens}
        if self._config.temperature is not None:
            options["temperature"] = self._config.temperature
        return {
            "model": self._config.model_id,
            "prompt": prompt,
            "images": [image.data],
            "stream": False,
            "options": options,
        }

    def invoke(self, image: EncodedImage, prompt: str) -> ModelCompletion:
        endpoint = f"{self._base_url}/api/generate"
        started = time.monotonic()
        response = self._session_post(endpoint, self.build_payload(image, prompt))
        latency_ms = round((time.monotonic() - started) * 1000, 2)

        try:
            data = response.json()
        except ValueError as exc:
            raise ModelResponseMalformed("Ollama response body is not JSON.") from exc
        if not isinstance(data, dict):
            raise ModelResponseMalformed("Ollama response body is not an object.")
        if "error" in data:
            raise ModelUnavailable(f"Ollama backend error: {data['error']}")
        text = data.get("response")
        if not isinstance(text, str):
            raise ModelResponseMalformed("Ollama backend returned an unexpected payload.")

        return ModelCompletion(
            text=text,
            model_id=self._config.model_id,
            stop_reason=data.get("done_reason"),
            input_tokens=int(data.get("prompt_eval_count") or 0),
            output_tokens=int(data.get("eval_count") or 0),
            latency_ms=latency_ms,
        )

    def _session_post(self, url: str, payload: dict[str, Any]) -> Response:
        if self._session is None:
            raise ModelError("HTTP session not initialised.")
        timeout = self._config.model_timeout
        try:
            response = self._session.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=timeout,
            )
        except requests.exceptions.Timeout as exc:
            raise Timeout(
                f"ollama request timed out after {timeout}s. "
                "Increase the model timeout or ensure the model is loaded.",
                operation="model",
            ) from exc
        except requests.exceptions.RequestException as exc:
            raise ModelUnavailable(f"Failed to contact ollama backend: {exc}") from exc
        if response.status_code >= 400:
            raise ModelUnavailable(
                f"ollama backend returned HTTP {response.status_code}: {response.text}"
            )
        return response


def _register() -> None:
    ModelRegistry.register("ollama", lambda config: OllamaVisionModel(config))


_register()
