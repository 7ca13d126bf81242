"""Core service orchestrating brew photo analysis."""

from __future__ import annotations

import base64
import binascii
import logging
from threading import Lock
from typing import Protocol

from ..config import AppConfig
from ..errors import BrewAnalysisError, EncodingError, InvalidRequest, MissingConfiguration
from ..models.base import (
    AnalysisRequest,
    AnalysisResult,
    EncodedImage,
    RawImage,
    VisionModel,
)
from ..models.registry import ModelRegistry
from ..prompts import PROMPT_VERSION, build_prompt
from ..storage.s3 import S3ImageFetcher
from .result_parser import parse_completion

logger = logging.getLogger(__name__)


class ImageFetcher(Protocol):
    def fetch(self, key: str) -> RawImage:
        """Return the fully materialised image stored under ``key``."""


def encode_image(image: RawImage) -> EncodedImage:
    """Base64-encode image bytes for the model transport, refusing partial output."""
    try:
        encoded = base64.b64encode(image.data).decode("ascii")
    except (TypeError, ValueError, binascii.Error) as exc:
        raise EncodingError(f"Could not encode {image.key!r} for transport: {exc}") from exc
    expected_length = 4 * ((len(image.data) + 2) // 3)
    if not encoded or len(encoded) != expected_length:
        raise EncodingError(
            f"Encoded payload for {image.key!r} has {len(encoded)} characters, "
            f"expected {expected_length}."
        )
    return EncodedImage(data=encoded, media_type=image.media_type)


class BrewAnalyzer:
    """High-level orchestration for the analysis workflow."""

    def __init__(
        self,
        config: AppConfig,
        *,
        fetcher: ImageFetcher | None = None,
        model: VisionModel | None = None,
    ) -> None:
        self.config = config
        self._fetcher = fetcher
        self._model = model
        self._lock = Lock()

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        """Fetch the photo, ask the model for an assessment and validate the answer."""
        try:
            return self._analyze(request)
        except BrewAnalysisError as exc:
            logger.warning(
                "Brew analysis failed for %r with %s: %s",
                getattr(request, "photo_key", None),
                exc.kind,
                exc,
            )
            raise

    def _analyze(self, request: AnalysisRequest) -> AnalysisResult:
        request = request.validated()
        self._check_namespace(request.photo_key)

        fetcher = self._get_fetcher()
        raw_image = fetcher.fetch(request.photo_key)
        encoded = encode_image(raw_image)
        prompt = build_prompt(request.brew_method)

        model = self._get_model()
        logger.debug(
            "Invoking '%s' for %s (%s, prompt %s)",
            model.info().identifier,
            request.photo_key,
            encoded.media_type.value,
            PROMPT_VERSION,
        )
        completion = model.invoke(encoded, prompt)
        result = parse_completion(completion)

        logger.info(
            "Analyzed %s: score=%.1f channeling=%s over_extraction=%s latency_ms=%.0f",
            request.photo_key,
            result.extraction_score,
            result.channeling,
            result.over_extraction,
            completion.latency_ms,
        )
        return result

    def _check_namespace(self, key: str) -> None:
        prefix = self.config.photo_prefix
        if prefix and not key.startswith(prefix):
            raise InvalidRequest(f"photoKey must start with {prefix!r}.")

    def _get_fetcher(self) -> ImageFetcher:
        bucket = self.config.require_bucket()
        with self._lock:
            if self._fetcher is None:
                self._fetcher = S3ImageFetcher(bucket, timeout=self.config.storage_timeout)
        return self._fetcher

    def _get_model(self) -> VisionModel:
        with self._lock:
            if self._model is None:
                logger.info("Loading model backend '%s'...", self.config.model_backend)
                try:
                    self._model = ModelRegistry.get(self.config.model_backend, config=self.config)
                except KeyError as exc:
                    raise MissingConfiguration(str(exc.args[0])) from exc
                logger.info("Model backend '%s' ready.", self.config.model_backend)
        return self._model
