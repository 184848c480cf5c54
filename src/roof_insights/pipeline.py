"""Request orchestration for the business-insight pipeline.

One run walks these states::

    RateCheck -> Limited | Proceed
    Proceed   -> Aggregate -> AiAttempt -> AiSuccess | AiFailure
    AiFailure -> Fallback
    AiSuccess | Fallback -> Respond

Only authentication, rate limiting and aggregation errors reach the caller.
Every AI problem degrades into the fallback path.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, Field, field_validator, model_validator

from roof_insights.advisors.ai import AiAdvisor
from roof_insights.advisors.fallback import FallbackAdvisor
from roof_insights.aggregator import CostAggregator
from roof_insights.errors import AiAdvisorError, UnauthenticatedError
from roof_insights.guards.rate_limit import RateLimiter
from roof_insights.models import InsightResponse, Locale
from roof_insights.store.base import JobStore, Scope

logger = structlog.get_logger(__name__)


class InsightsBody(BaseModel):
    """JSON body of a business-insights request. Malformed fields fall back to defaults."""

    org_id: str | None = Field(default=None, alias="orgId")
    lang: Locale = Locale.EN

    @model_validator(mode="before")
    @classmethod
    def _object_or_empty(cls, data: Any) -> Any:
        return data if isinstance(data, dict) else {}

    @field_validator("org_id", mode="before")
    @classmethod
    def _org_id(cls, value: Any) -> str | None:
        if not isinstance(value, str) or not value.strip():
            return None
        return value.strip()

    @field_validator("lang", mode="before")
    @classmethod
    def _lang(cls, value: Any) -> Locale:
        return Locale(value)


@dataclass(frozen=True)
class InsightRequest:
    """Inbound request: who is asking, for which scope, in which language."""

    user_id: str | None
    organization_id: str | None = None
    locale: Locale = Locale.EN

    @classmethod
    def from_body(
        cls,
        body: InsightsBody,
        user_id: str | None,
        profile_org_id: str | None = None,
    ) -> "InsightRequest":
        """The body's orgId wins over the caller's profile organization."""
        return cls(
            user_id=user_id,
            organization_id=body.org_id or profile_org_id or None,
            locale=body.lang,
        )

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        user_id: str | None,
        profile_org_id: str | None = None,
    ) -> "InsightRequest":
        return cls.from_body(InsightsBody.model_validate(payload), user_id, profile_org_id)

    @property
    def scope(self) -> Scope:
        return Scope(user_id=self.user_id or "", organization_id=self.organization_id)


class InsightPipeline:
    """Composes rate limiting, aggregation and the two advisors."""

    def __init__(
        self,
        store: JobStore,
        rate_limiter: RateLimiter | None = None,
        ai_advisor: AiAdvisor | None = None,
        fallback_advisor: FallbackAdvisor | None = None,
    ):
        self.aggregator = CostAggregator(store)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.ai_advisor = ai_advisor
        self.fallback_advisor = fallback_advisor or FallbackAdvisor()

    async def run(self, request: InsightRequest, today: date | None = None) -> InsightResponse:
        """Produce today's insight snapshot for the request's scope.

        Raises:
            UnauthenticatedError: No calling identity.
            RateLimitedError: The identity exhausted its window.
            AggregationError: The data store could not be read.
        """
        if not request.user_id:
            raise UnauthenticatedError("Unauthorized")

        scope = request.scope
        log = logger.bind(identity=request.user_id, scope=scope.key, locale=request.locale.value)

        self.rate_limiter.check(request.user_id)

        now = datetime.now(timezone.utc)
        aggregation = await self.aggregator.aggregate(scope, today or now.date())
        context = aggregation.context

        if self.ai_advisor is None:
            log.info("ai_skipped", reason="no_credential")
        elif context.active_jobs == 0:
            log.info("ai_skipped", reason="no_active_jobs")
        else:
            try:
                response = await self.ai_advisor.summarize(
                    context, aggregation.jobs, request.locale, generated_at=now
                )
            except AiAdvisorError as e:
                log.warning("ai_fallback", reason=e.reason, details=e.details)
            except Exception:
                log.exception("ai_fallback", reason="unexpected_error")
            else:
                log.info("insights_generated", source=response.source.value)
                return response

        response = self.fallback_advisor.compute(context, request.locale, generated_at=now)
        log.info("insights_generated", source=response.source.value)
        return response
