"""Versioned instruction text sent to the vision model.

Changing the wording changes model behaviour, so every edit must bump
``PROMPT_VERSION``.
"""

from __future__ import annotations

PROMPT_VERSION = "analyze_brew/v1"

BREW_ANALYSIS_PROMPT = """\
You are an expert barista and coffee extraction analyst. Analyze this {brew_method} coffee brew photo.

Evaluate the following aspects:
1. **Color Analysis**: Assess the color uniformity and what it indicates about extraction
2. **Pattern Analysis**: Look for signs of channeling (uneven water flow paths)
3. **Texture Notes**: Analyze the crema (espresso) or coffee bed (pour-over) texture
4. **Extraction Score**: Rate from 0-100 based on visual indicators
5. **Issues**: Identify channeling or over/under extraction

Respond with ONLY valid JSON in this exact format:
{{
  "extractionScore": <number 0-100>,
  "visualFeedback": {{
    "colorAnalysis": "<string>",
    "patternAnalysis": "<string>",
    "textureNotes": "<string>"
  }},
  "channeling": <boolean>,
  "overExtraction": <boolean>,
  "aiSuggestions": "<specific actionable recommendations>"
}}"""


def build_prompt(brew_method: str) -> str:
    """Render the analysis instruction for ``brew_method``, inserted verbatim."""
    return BREW_ANALYSIS_PROMPT.format(brew_method=brew_method)
