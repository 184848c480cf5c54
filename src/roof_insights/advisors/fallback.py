"""Deterministic insight rules used whenever no AI insight is available."""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

import structlog

from roof_insights.config import get_settings
from roof_insights.models import (
    MAX_INSIGHTS,
    Insight,
    InsightKind,
    InsightResponse,
    InsightSource,
    Locale,
    OrgContext,
)

logger = structlog.get_logger(__name__)

# Copy per locale: (title, body template)
_COPY: dict[Locale, dict[str, tuple[str, str]]] = {
    Locale.EN: {
        "budget_alert": (
            "Budget Alert",
            "Actual spend is already {burn}% of contracted value on active jobs. "
            "Review material costs and labor hours this week.",
        ),
        "over_budget": (
            "Jobs Over Budget",
            "{count} job(s) have exceeded their estimated budget. "
            "Schedule a team review before the next shift.",
        ),
        "milestones": (
            "Pending Milestones Today",
            "There are {count} milestone(s) scheduled for today. "
            "Confirm dates with clients and update the schedule.",
        ),
        "follow_up": (
            "Proactive Follow-Up",
            "With {count} active job(s), now is a great time to send status updates "
            "to clients and reinforce trust.",
        ),
        "upsell": (
            "Upsell Opportunity",
            "Approved roofs are the best moment to offer annual preventive maintenance. "
            "Mention it to the client at close.",
        ),
    },
    Locale.ES: {
        "budget_alert": (
            "Alerta de presupuesto",
            "El gasto real ya es el {burn}% del valor contratado en proyectos activos. "
            "Revisá los costos de materiales y horas esta semana.",
        ),
        "over_budget": (
            "Proyectos sobre presupuesto",
            "{count} proyecto(s) superaron el presupuesto estimado. "
            "Coordiná una revisión con el equipo antes del próximo turno.",
        ),
        "milestones": (
            "Hitos pendientes hoy",
            "Hay {count} hito(s) programado(s) para hoy. "
            "Confirmá fechas con los clientes y actualizá el cronograma.",
        ),
        "follow_up": (
            "Seguimiento proactivo",
            "Con {count} proyecto(s) activo(s), es buen momento para enviar "
            "actualizaciones de estado a los clientes y reforzar la confianza.",
        ),
        "upsell": (
            "Oportunidad de upsell",
            "Los techos aprobados son el mejor momento para ofrecer mantenimiento "
            "preventivo anual. Mencionáselo al cliente al momento del cierre.",
        ),
    },
}

# Summary line per locale: (no active jobs, with active jobs)
_SUMMARIES: dict[Locale, tuple[str, str]] = {
    Locale.EN: (
        "No active jobs to analyze today.",
        "{count} active job(s) with a {burn}% burn rate.",
    ),
    Locale.ES: (
        "No hay proyectos activos para analizar hoy.",
        "{count} proyecto(s) activo(s) con un burn rate del {burn}%.",
    ),
}


def format_pct(value: Decimal) -> str:
    """Whole-number percentage, rounded half up."""
    return str(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class FallbackAdvisor:
    """Rule engine turning an OrgContext into at most three insights.

    Rules are evaluated independently and in priority order, so every
    qualifying insight is collected before the list is capped:

    1. burn rate above the alert threshold -> risk
    2. any job over budget -> risk
    3. milestones scheduled today and not completed -> action
    4. nothing above fired and jobs are in flight -> follow-up opportunity
    5. fewer than three so far -> fixed upsell opportunity
    """

    def __init__(self, burn_rate_alert_pct: float | None = None):
        threshold = (
            burn_rate_alert_pct
            if burn_rate_alert_pct is not None
            else get_settings().burn_rate_alert_pct
        )
        self.burn_rate_alert_pct = Decimal(str(threshold))

    def _insight(
        self, kind: InsightKind, key: str, locale: Locale, **values: object
    ) -> Insight:
        title, body = _COPY[locale][key]
        return Insight(kind=kind, title=title, body=body.format(**values))

    def insights(self, context: OrgContext, locale: Locale = Locale.EN) -> list[Insight]:
        insights: list[Insight] = []
        burn = context.burn_rate_pct

        if burn > self.burn_rate_alert_pct:
            insights.append(
                self._insight(InsightKind.RISK, "budget_alert", locale, burn=format_pct(burn))
            )

        if context.jobs_over_budget > 0:
            insights.append(
                self._insight(
                    InsightKind.RISK, "over_budget", locale, count=context.jobs_over_budget
                )
            )

        if context.pending_milestones > 0:
            insights.append(
                self._insight(
                    InsightKind.ACTION, "milestones", locale, count=context.pending_milestones
                )
            )

        # Zero active jobs leaves only the upsell filler.
        if not insights and context.active_jobs > 0:
            insights.append(
                self._insight(
                    InsightKind.OPPORTUNITY, "follow_up", locale, count=context.active_jobs
                )
            )

        if len(insights) < MAX_INSIGHTS:
            insights.append(self._insight(InsightKind.OPPORTUNITY, "upsell", locale))

        return insights[:MAX_INSIGHTS]

    def summary(self, context: OrgContext, locale: Locale = Locale.EN) -> str:
        empty, template = _SUMMARIES[locale]
        if context.active_jobs == 0:
            return empty
        return template.format(
            count=context.active_jobs, burn=format_pct(context.burn_rate_pct)
        )

    def compute(
        self,
        context: OrgContext,
        locale: Locale = Locale.EN,
        generated_at: datetime | None = None,
    ) -> InsightResponse:
        """Build a complete response from the context alone. Never fails."""
        insights = self.insights(context, locale)
        logger.debug("fallback_insights_computed", count=len(insights), locale=locale.value)
        response = InsightResponse(
            insights=insights,
            summary=self.summary(context, locale),
            source=InsightSource.FALLBACK,
            context=context,
        )
        if generated_at is not None:
            response.generated_at = generated_at
        return response
