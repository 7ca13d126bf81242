"""Value types and interfaces shared by the analysis pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Protocol

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator

from ..errors import InvalidRequest

SCORE_MIN = 0.0
SCORE_MAX = 100.0


class MediaType(str, Enum):
    """Image media types understood by the model backends."""

    PNG = "image/png"
    JPEG = "image/jpeg"

    @property
    def format_name(self) -> str:
        """Short format name, e.g. ``png`` for ``image/png``."""
        return self.value.split("/", 1)[1]


@dataclass(frozen=True, slots=True)
class AnalysisRequest:
    """Inputs for a single brew analysis."""

    photo_key: str
    brew_method: str

    def validated(self) -> AnalysisRequest:
        """Return the request unchanged, raising ``InvalidRequest`` if incomplete.

        Blank values are rejected, but accepted values keep their exact text:
        object keys may legally carry spaces and the brew method is quoted
        verbatim in the prompt.
        """
        if not isinstance(self.photo_key, str) or not self.photo_key.strip():
            raise InvalidRequest("photoKey must be a non-empty string.")
        if not isinstance(self.brew_method, str) or not self.brew_method.strip():
            raise InvalidRequest("brewMethod must be a non-empty string.")
        return self

    @classmethod
    def from_arguments(cls, arguments: Mapping[str, Any] | None) -> AnalysisRequest:
        """Build a request from camelCase resolver arguments."""
        if not isinstance(arguments, Mapping):
            raise InvalidRequest("Request arguments must be an object.")
        return cls(
            photo_key=arguments.get("photoKey"),  # type: ignore[arg-type]
            brew_method=arguments.get("brewMethod"),  # type: ignore[arg-type]
        ).validated()


@dataclass(frozen=True, slots=True)
class RawImage:
    """Fully materialised image bytes fetched from storage."""

    key: str
    data: bytes
    media_type: MediaType

    def __repr__(self) -> str:
        return f"RawImage(key={self.key!r}, size={len(self.data)}, media_type={self.media_type.value})"


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """Base64 transport form of a ``RawImage``."""

    data: str
    media_type: MediaType

    def __repr__(self) -> str:
        return f"EncodedImage(length={len(self.data)}, media_type={self.media_type.value})"


@dataclass(frozen=True, slots=True)
class ModelInfo:
    """Metadata describing an available model backend."""

    identifier: str
    display_name: str
    description: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ModelCompletion:
    """Text completion returned by a model backend."""

    text: str
    model_id: str
    stop_reason: str | None = None
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: float = 0.0

    @property
    def truncated(self) -> bool:
        return self.stop_reason in {"max_tokens", "length"}


class VisualFeedback(BaseModel):
    """Free-text observations about the brew photo."""

    model_config = ConfigDict(frozen=True)

    color_analysis: StrictStr = Field(alias="colorAnalysis")
    pattern_analysis: StrictStr = Field(alias="patternAnalysis")
    texture_notes: StrictStr = Field(alias="textureNotes")


class AnalysisResult(BaseModel):
    """Structured quality assessment of a brew photo."""

    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    extraction_score: float = Field(alias="extractionScore")
    visual_feedback: VisualFeedback = Field(alias="visualFeedback")
    channeling: StrictBool
    over_extraction: StrictBool = Field(alias="overExtraction")
    ai_suggestions: StrictStr = Field(alias="aiSuggestions")

    @field_validator("extraction_score", mode="before")
    @classmethod
    def _require_number(cls, value: Any) -> Any:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        return value

    @field_validator("extraction_score", mode="after")
    @classmethod
    def _clamp_score(cls, value: float) -> float:
        return min(max(value, SCORE_MIN), SCORE_MAX)

    def as_dict(self) -> dict[str, Any]:
        """Serialize to the camelCase shape returned to resolver callers."""
        return self.model_dump(mode="json", by_alias=True)


class VisionModel(Protocol):
    """Interface that all model backends must satisfy."""

    def info(self) -> ModelInfo:
        """Return metadata describing the backend."""

    def load(self) -> None:
        """Create clients or sessions needed by ``invoke``."""

    def invoke(self, image: EncodedImage, prompt: str) -> ModelCompletion:
        """Send one image and one instruction, returning the text completion."""
