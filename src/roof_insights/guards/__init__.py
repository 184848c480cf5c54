"""Input guards protecting the AI call path."""

from roof_insights.guards.rate_limit import (
    InMemoryRateLimitStore,
    RateLimiter,
    RateLimitStore,
    WindowState,
)
from roof_insights.guards.sanitize import clean_text

__all__ = [
    "InMemoryRateLimitStore",
    "RateLimiter",
    "RateLimitStore",
    "WindowState",
    "clean_text",
]
