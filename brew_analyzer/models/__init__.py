"""Model backends and shared value types for brew analysis."""

from .base import (
    AnalysisRequest,
    AnalysisResult,
    EncodedImage,
    MediaType,
    ModelCompletion,
    ModelInfo,
    RawImage,
    VisionModel,
    VisualFeedback,
)
from .bedrock import BedrockVisionModel
from .ollama import OllamaVisionModel
from .registry import ModelRegistry

__all__ = [
    "AnalysisRequest",
    "AnalysisResult",
    "BedrockVisionModel",
    "EncodedImage",
    "MediaType",
    "ModelCompletion",
    "ModelInfo",
    "ModelRegistry",
    "OllamaVisionModel",
    "RawImage",
    "VisionModel",
    "VisualFeedback",
]
