"""Service layer coordinating photo retrieval, model calls and validation."""

from .analyzer import BrewAnalyzer, encode_image
from .result_parser import parse_completion, validate_payload

__all__ = ["BrewAnalyzer", "encode_image", "parse_completion", "validate_payload"]
