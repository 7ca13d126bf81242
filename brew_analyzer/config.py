"""Application-wide configuration models and persistence helpers."""

from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import MissingConfiguration

CONFIG_FILE_ENV = "BREW_CONFIG_FILE"

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}

# Field name -> environment variables consulted in order.
ENVIRONMENT_OVERRIDES: dict[str, tuple[str, ...]] = {
    "bucket_name": ("BUCKET_NAME",),
    "photo_prefix": ("BREW_PHOTO_PREFIX",),
    "model_backend": ("BREW_MODEL_BACKEND",),
    "model_id": ("BREW_MODEL_ID",),
    "region": ("BREW_MODEL_REGION", "AWS_REGION"),
    "endpoint_url": ("BREW_MODEL_ENDPOINT",),
    "max_tokens": ("BREW_MAX_TOKENS",),
    "temperature": ("BREW_TEMPERATURE",),
    "storage_timeout": ("BREW_STORAGE_TIMEOUT",),
    "model_timeout": ("BREW_MODEL_TIMEOUT",),
    "log_level": ("BREW_LOG_LEVEL",),
}


class AppConfig(BaseModel):
    """Validates and stores runtime settings for the analysis service."""

    bucket_name: str | None = Field(
        default=None,
        description="Object store bucket holding uploaded brew photos.",
    )
    photo_prefix: str = Field(
        default="",
        description="Optional key namespace photos must live under, e.g. brew-photos/.",
    )
    model_backend: str = Field(
        default="bedrock",
        description="Identifier of the registered model backend.",
    )
    model_id: str = Field(
        default="us.amazon.nova-lite-v1:0",
        description="Model or inference profile identifier passed to the backend.",
    )
    region: str = Field(
        default="us-west-2",
        description="Region of the model service.",
    )
    endpoint_url: str | None = Field(
        default=None,
        description="Optional endpoint override for the model service.",
    )
    max_tokens: int = Field(
        default=1024,
        ge=256,
        le=8192,
        description="Generation-length budget requested from the model.",
    )
    temperature: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Sampling temperature; the backend default is used when unset.",
    )
    storage_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Timeout (seconds) for object store calls.",
    )
    model_timeout: float = Field(
        default=60.0,
        gt=0.0,
        le=900.0,
        description="Timeout (seconds) for model invocations.",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level used by the resolver handler.",
    )

    @model_validator(mode="after")
    def _normalise_strings(self) -> AppConfig:
        if self.bucket_name is not None:
            self.bucket_name = self.bucket_name.strip() or None
        self.model_backend = self.model_backend.strip().lower()
        if not self.model_backend:
            raise ValueError("Model backend must not be empty.")
        self.model_id = self.model_id.strip()
        if not self.model_id:
            raise ValueError("Model identifier must not be empty.")
        self.log_level = self.log_level.strip().upper() or "INFO"
        if self.log_level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {self.log_level!r}.")
        return self

    @model_validator(mode="after")
    def _normalise_endpoint(self) -> AppConfig:
        if self.endpoint_url is None:
            return self
        base = self.endpoint_url.strip()
        if not base:
            self.endpoint_url = None
            return self
        if "://" not in base:
            raise ValueError("Endpoint URL must include a scheme such as https://.")
        self.endpoint_url = base.rstrip("/")
        return self

    def require_bucket(self) -> str:
        """Return the bucket name or raise ``MissingConfiguration``."""
        if not self.bucket_name:
            raise MissingConfiguration(
                "No storage bucket configured; set BUCKET_NAME or bucket_name."
            )
        return self.bucket_name

    def as_dict(self) -> dict[str, Any]:
        """Serialize the configuration to primitive Python types."""
        return self.model_dump(mode="json")

    @classmethod
    def load(cls, path: Path) -> AppConfig:
        """Load configuration from a YAML or JSON file."""
        data = _read_config_file(path)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid configuration file at {path}: {exc}") from exc

    def save(self, path: Path) -> None:
        """Persist configuration to a YAML or JSON file."""
        _write_config_file(path, self.as_dict())

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AppConfig:
        """Build configuration from an optional config file plus environment overrides."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {}
        config_file = env.get(CONFIG_FILE_ENV)
        if config_file:
            data.update(_read_config_file(Path(config_file)))
        for field_name, variables in ENVIRONMENT_OVERRIDES.items():
            for variable in variables:
                value = env.get(variable)
                if value is not None and value != "":
                    data[field_name] = value
                    break
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid environment configuration: {exc}") from exc


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)

    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".yaml", ".yml"}:
        return yaml.safe_load(text) or {}
    return json.loads(text)


def _write_config_file(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() in {".yaml", ".yml"}:
        yaml_text = yaml.safe_dump(
            data,
            allow_unicode=False,
            sort_keys=False,
        )
        path.write_text(yaml_text, encoding="utf-8")
    else:
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
