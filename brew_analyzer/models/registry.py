"""Registry for discovering model backends by name."""

from __future__ import annotations

import logging
from importlib import import_module
from typing import Callable, Dict

from ..config import AppConfig
from .base import ModelInfo, VisionModel


Factory = Callable[[AppConfig], VisionModel]
logger = logging.getLogger(__name__)


class ModelRegistry:
    """Tracks available backend factories and lazily loads them on demand."""

    _factories: Dict[str, Factory] = {}
    _bootstrap_complete: bool = False

    @classmethod
    def register(cls, name: str, factory: Factory) -> None:
        """Register a backend factory under the provided name."""
        cls._factories[name] = factory

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._factories.pop(name, None)

    @classmethod
    def ensure_bootstrapped(cls) -> None:
        if cls._bootstrap_complete:
            return
        modules = [
            "brew_analyzer.models.bedrock",
            "brew_analyzer.models.ollama",
        ]
        for module_name in modules:
            import_module(module_name)
        cls._bootstrap_complete = True

    @classmethod
    def names(cls) -> list[str]:
        cls.ensure_bootstrapped()
        return sorted(cls._factories)

    @classmethod
    def list_model_infos(cls, config: AppConfig | None = None) -> list[ModelInfo]:
        """Return metadata for all registered backends."""
        cls.ensure_bootstrapped()
        effective = config or AppConfig()
        return [cls._factories[name](effective).info() for name in sorted(cls._factories)]

    @classmethod
    def get(cls, name: str, *, config: AppConfig) -> VisionModel:
        """Instantiate and load the backend registered as ``name``."""
        cls.ensure_bootstrapped()
        try:
            factory = cls._factories[name]
        except KeyError as exc:
            available = ", ".join(sorted(cls._factories))
            raise KeyError(f"Unknown model backend '{name}'. Available: {available}") from exc
        instance = factory(config)
        logger.debug("Loading model backend '%s'", name)
        instance.load()
        return instance
