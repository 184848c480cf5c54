"""Insight advisors: the AI path and the deterministic fallback."""

from roof_insights.advisors.ai import (
    AiAdvisor,
    build_prompts,
    extract_json_object,
    parse_ai_payload,
)
from roof_insights.advisors.fallback import FallbackAdvisor

__all__ = [
    "AiAdvisor",
    "FallbackAdvisor",
    "build_prompts",
    "extract_json_object",
    "parse_ai_payload",
]
