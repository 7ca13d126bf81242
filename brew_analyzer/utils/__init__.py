"""Utility helpers for the Brew Analyzer library."""

from .json_text import JsonSpan, extract_json_object, strip_markdown

__all__ = ["JsonSpan", "extract_json_object", "strip_markdown"]
