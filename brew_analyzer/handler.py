"""Serverless resolver entry point for the ``analyzeBrew`` query."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any

from .config import AppConfig
from .models.base import AnalysisRequest
from .services.analyzer import BrewAnalyzer

logger = logging.getLogger(__name__)

_analyzer: BrewAnalyzer | None = None
_analyzer_lock = Lock()


def get_analyzer() -> BrewAnalyzer:
    """Return the process-wide analyzer, building it from the environment once."""
    global _analyzer
    with _analyzer_lock:
        if _analyzer is None:
            config = AppConfig.from_env()
            logging.getLogger().setLevel(config.log_level)
            logger.info(
                "Initialised brew analyzer (backend=%s, model=%s, region=%s)",
                config.model_backend,
                config.model_id,
                config.region,
            )
            _analyzer = BrewAnalyzer(config)
        return _analyzer


def reset_analyzer() -> None:
    """Drop the process-wide analyzer; a no-op when none was built."""
    global _analyzer
    with _analyzer_lock:
        _analyzer = None


def handler(event: dict[str, Any], context: Any = None) -> dict[str, Any]:
    """Analyze the photo named in ``event['arguments']`` and return the result."""
    request = AnalysisRequest.from_arguments(event.get("arguments"))
    result = get_analyzer().analyze(request)
    return result.as_dict()
