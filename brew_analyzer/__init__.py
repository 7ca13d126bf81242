"""Top-level package for the Brew Analyzer library."""

from .config import AppConfig
from .models.base import AnalysisRequest, AnalysisResult, VisualFeedback
from .services.analyzer import BrewAnalyzer

__all__ = ["AnalysisRequest", "AnalysisResult", "AppConfig", "BrewAnalyzer", "VisualFeedback"]
