"""HTTP surface for the insight pipeline and the description improver.

The identity headers are set by the authenticating proxy in front of this
service and are trusted as-is.
"""

from typing import Any

import structlog
from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from roof_insights import __version__
from roof_insights.advisors.ai import AiAdvisor
from roof_insights.clients import ClaudeClient, OpenAIClient
from roof_insights.config import get_settings
from roof_insights.description import DescriptionBody, DescriptionImprover, DescriptionRequest
from roof_insights.errors import InsightsError, RateLimitedError
from roof_insights.pipeline import InsightPipeline, InsightRequest, InsightsBody
from roof_insights.store import JobStore, SupabaseJobStore

logger = structlog.get_logger(__name__)


def build_pipeline(store: JobStore | None = None) -> InsightPipeline:
    """Wire a pipeline from settings; no Anthropic key means fallback only."""
    settings = get_settings()
    ai_advisor = AiAdvisor(ClaudeClient()) if settings.ai_enabled else None
    return InsightPipeline(store or SupabaseJobStore(), ai_advisor=ai_advisor)


def build_improver() -> DescriptionImprover:
    settings = get_settings()
    key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else ""
    return DescriptionImprover(OpenAIClient(api_key=key) if key else None)


def create_app(
    pipeline: InsightPipeline | None = None,
    improver: DescriptionImprover | None = None,
) -> FastAPI:
    app = FastAPI(title="Roofing Business Insights API", version=__version__)
    app.state.pipeline = pipeline or build_pipeline()
    app.state.improver = improver or build_improver()

    @app.exception_handler(InsightsError)
    async def insights_error_handler(request: Request, exc: InsightsError) -> JSONResponse:
        headers = None
        if isinstance(exc, RateLimitedError):
            headers = {"Retry-After": str(exc.retry_after)}
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=str(exc))
            return JSONResponse({"error": "Internal server error"}, status_code=exc.status_code)
        return JSONResponse(exc.to_dict(), status_code=exc.status_code, headers=headers)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_failed", path=request.url.path)
        return JSONResponse({"error": "Internal server error"}, status_code=500)

    @app.get("/api/health")
    async def health() -> dict[str, str]:
        return {
            "status": "ok",
            "ai_enabled": "true" if app.state.pipeline.ai_advisor is not None else "false",
        }

    @app.post("/api/ai/business-insights")
    async def business_insights(
        body: InsightsBody | None = None,
        x_user_id: str | None = Header(default=None),
        x_org_id: str | None = Header(default=None),
    ) -> dict[str, Any]:
        insight_request = InsightRequest.from_body(
            body or InsightsBody(), x_user_id, profile_org_id=x_org_id
        )
        response = await app.state.pipeline.run(insight_request)
        return response.to_dict()

    @app.post("/api/ai/improve-description")
    async def improve_description(body: DescriptionBody | None = None) -> dict[str, str]:
        description_request = DescriptionRequest.from_body(body or DescriptionBody())
        result = await app.state.improver.improve(description_request)
        return result.to_dict()

    return app
