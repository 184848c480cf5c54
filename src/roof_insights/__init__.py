"""Roof Insights - cost aggregation and business insights for roofing contractors."""

__version__ = "0.1.0"

from roof_insights.advisors import AiAdvisor, FallbackAdvisor, extract_json_object
from roof_insights.aggregator import Aggregation, CostAggregator
from roof_insights.config import configure_logging, get_settings
from roof_insights.errors import (
    AggregationError,
    AiAdvisorError,
    InsightsError,
    RateLimitedError,
    UnauthenticatedError,
    ValidationError,
)
from roof_insights.guards import InMemoryRateLimitStore, RateLimiter, clean_text
from roof_insights.models import (
    Insight,
    InsightKind,
    InsightResponse,
    InsightSource,
    JobCostRecord,
    Locale,
    OrgContext,
)
from roof_insights.pipeline import InsightPipeline, InsightRequest
from roof_insights.store import InMemoryJobStore, JobStore, Scope, SupabaseJobStore

__all__ = [
    # Version
    "__version__",
    # Pipeline
    "InsightPipeline",
    "InsightRequest",
    "CostAggregator",
    "Aggregation",
    # Advisors
    "AiAdvisor",
    "FallbackAdvisor",
    "extract_json_object",
    # Guards
    "RateLimiter",
    "InMemoryRateLimitStore",
    "clean_text",
    # Data store
    "JobStore",
    "Scope",
    "InMemoryJobStore",
    "SupabaseJobStore",
    # Models
    "Insight",
    "InsightKind",
    "InsightResponse",
    "InsightSource",
    "JobCostRecord",
    "Locale",
    "OrgContext",
    # Errors
    "InsightsError",
    "UnauthenticatedError",
    "RateLimitedError",
    "AggregationError",
    "AiAdvisorError",
    "ValidationError",
    # Config
    "get_settings",
    "configure_logging",
]
