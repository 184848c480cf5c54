"""AI-generated business insights.

The advisor renders the aggregated numbers into a localized prompt, asks
the completion service for strict JSON, and validates whatever comes back.
Anything short of a usable payload is an AiAdvisorError; callers fall back
to the rule engine.
"""

import asyncio
import json
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Any

import anthropic
import httpx
import openai
import structlog

from roof_insights.clients import CompletionClient
from roof_insights.config import get_settings
from roof_insights.errors import AiAdvisorError
from roof_insights.guards.sanitize import clean_text
from roof_insights.models import (
    Insight,
    InsightKind,
    InsightResponse,
    InsightSource,
    JobCostRecord,
    Locale,
    OrgContext,
    rank_insights,
)

logger = structlog.get_logger(__name__)

SUMMARY_MAX_LEN = 400
TITLE_MAX_LEN = 80
BODY_MAX_LEN = 400

SYSTEM_PROMPTS = {
    Locale.EN: (
        "You are a business advisor expert in the US roofing industry. Your role is to "
        "analyze operational company data and give concrete, actionable, direct advice. "
        "Always respond in English. Maximum 3 insights. Strict JSON format."
    ),
    Locale.ES: (
        "Sos un asesor de negocios experto en la industria de roofing (techado) en Estados "
        "Unidos. Tu rol es analizar los datos operativos de la empresa y dar consejos "
        "concretos, accionables y directos. Respondé siempre en español. Máximo 3 insights. "
        "Formato JSON estricto."
    ),
}

_LABELS = {
    Locale.EN: {
        "intro": "Analyze today's data for a roofing company:",
        "executive": "EXECUTIVE SUMMARY:",
        "active_jobs": "Active jobs",
        "contract_value": "Total contracted value",
        "actual_cost": "Actual cumulative spend",
        "burn_rate": "Burn rate",
        "over_budget": "Jobs over budget",
        "milestones": "Pending milestones today",
        "detail": "PER-JOB DETAIL:",
        "stage": "Stage",
        "contract": "Contract",
        "spent": "Spent",
        "flag": " [OVER BUDGET]",
        "deadline": "Deadline",
        "pending": "Pending milestones",
        "none": "none",
        "task": "Identify bottlenecks, cost overrun risks, or schedule delays. "
        "Return exactly this JSON:",
        "summary_hint": "Executive summary in 1 sentence",
        "title_hint": "Short title",
        "body_hint": "Actionable advice in max 2 sentences",
    },
    Locale.ES: {
        "intro": "Analizá estos datos de hoy de una empresa de roofing:",
        "executive": "RESUMEN EJECUTIVO:",
        "active_jobs": "Proyectos activos",
        "contract_value": "Valor total contratado",
        "actual_cost": "Gasto real acumulado",
        "burn_rate": "Burn rate",
        "over_budget": "Proyectos sobre presupuesto",
        "milestones": "Hitos pendientes hoy",
        "detail": "DETALLE POR PROYECTO:",
        "stage": "Etapa",
        "contract": "Contrato",
        "spent": "Gasto",
        "flag": " [SOBRE PRESUPUESTO]",
        "deadline": "Fecha límite",
        "pending": "Hitos pendientes",
        "none": "ninguno",
        "task": "Identificá cuellos de botella, riesgos de sobrecosto o retrasos. "
        "Devolvé exactamente este JSON:",
        "summary_hint": "Resumen ejecutivo en 1 oración",
        "title_hint": "Título corto",
        "body_hint": "Consejo accionable en 2 oraciones máximo",
    },
}


def _money(value: Decimal) -> str:
    return f"${value:,.0f}"


def _job_line(index: int, job: JobCostRecord, labels: dict[str, str]) -> str:
    pending = ", ".join(job.pending_milestone_stages) or labels["none"]
    parts = [
        f"{index}. {job.client_name or '-'}",
        f"{labels['stage']}: {job.stage or '-'}",
        f"{labels['contract']}: {_money(job.contract_value)}",
        f"{labels['spent']}: {_money(job.actual_cost)}"
        + (labels["flag"] if job.is_over_budget else ""),
    ]
    if job.deadline:
        parts.append(f"{labels['deadline']}: {job.deadline.isoformat()}")
    parts.append(f"{labels['pending']}: {pending}")
    return " | ".join(parts)


def build_prompts(
    context: OrgContext, jobs: list[JobCostRecord], locale: Locale = Locale.EN
) -> tuple[str, str]:
    """Return the (system, user) prompt pair for one insight request.

    Free-text job fields are cleaned again before they enter the prompt.
    """
    labels = _LABELS[locale]
    safe_jobs = [
        replace(
            job,
            client_name=clean_text(job.client_name, TITLE_MAX_LEN),
            stage=clean_text(job.stage, TITLE_MAX_LEN),
            pending_milestone_stages=tuple(
                clean_text(stage, TITLE_MAX_LEN) for stage in job.pending_milestone_stages
            ),
        )
        for job in jobs
    ]

    insight_shape = json.dumps(
        {
            "type": "risk|opportunity|action",
            "title": labels["title_hint"],
            "body": labels["body_hint"],
        },
        ensure_ascii=False,
    )
    lines = [
        labels["intro"],
        "",
        labels["executive"],
        f"- {labels['active_jobs']}: {context.active_jobs}",
        f"- {labels['contract_value']}: {_money(context.total_contract_value)}",
        f"- {labels['actual_cost']}: {_money(context.total_actual_cost)}",
        f"- {labels['burn_rate']}: {context.burn_rate_pct:.1f}%",
        f"- {labels['over_budget']}: {context.jobs_over_budget}",
        f"- {labels['milestones']}: {context.pending_milestones}",
        "",
        labels["detail"],
        *(_job_line(i, job, labels) for i, job in enumerate(safe_jobs, start=1)),
        "",
        labels["task"],
        "{",
        f'  "summary": "{labels["summary_hint"]}",',
        '  "insights": [',
        f"    {insight_shape},",
        f"    {insight_shape},",
        f"    {insight_shape}",
        "  ]",
        "}",
    ]
    return SYSTEM_PROMPTS[locale], "\n".join(lines)


def extract_json_object(text: str | None) -> dict[str, Any] | None:
    """Parse the first top-level ``{...}`` span found in ``text``.

    Completions often wrap the JSON in prose or markdown fences. The scan is
    string-aware, so braces inside JSON strings do not end the span early.
    Returns None when there is no balanced object or it is not valid JSON.
    """
    if not text:
        return None
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                try:
                    parsed = json.loads(text[start : pos + 1])
                except json.JSONDecodeError:
                    return None
                return parsed if isinstance(parsed, dict) else None
    return None


def _coerce_insight(raw: Any) -> Insight | None:
    if not isinstance(raw, dict):
        return None
    try:
        kind = InsightKind(str(raw.get("type", raw.get("kind", ""))).strip().lower())
    except ValueError:
        return None
    title, body = raw.get("title"), raw.get("body")
    title = clean_text(title, TITLE_MAX_LEN) if isinstance(title, str) else ""
    body = clean_text(body, BODY_MAX_LEN) if isinstance(body, str) else ""
    if not title or not body:
        return None
    return Insight(kind=kind, title=title, body=body)


def parse_ai_payload(payload: dict[str, Any] | None) -> tuple[str, list[Insight]]:
    """Validate a parsed completion and return (summary, insights).

    Raises:
        AiAdvisorError: The payload lacks a summary string or usable insights.
    """
    if payload is None:
        raise AiAdvisorError("no JSON object in completion")

    raw_insights = payload.get("insights")
    if not isinstance(raw_insights, list) or not raw_insights:
        raise AiAdvisorError("missing or empty insights array")

    summary = payload.get("summary")
    summary = clean_text(summary, SUMMARY_MAX_LEN) if isinstance(summary, str) else ""
    if not summary:
        raise AiAdvisorError("missing summary")

    insights = rank_insights([i for i in map(_coerce_insight, raw_insights) if i is not None])
    if not insights:
        raise AiAdvisorError("no valid insights", details={"received": len(raw_insights)})

    return summary, insights


class AiAdvisor:
    """Produces an InsightResponse from a language model, or raises AiAdvisorError."""

    def __init__(self, client: CompletionClient, max_tokens: int | None = None):
        self._client = client
        self._max_tokens = max_tokens or get_settings().ai_max_tokens

    async def summarize(
        self,
        context: OrgContext,
        jobs: list[JobCostRecord],
        locale: Locale = Locale.EN,
        generated_at: datetime | None = None,
    ) -> InsightResponse:
        system_prompt, user_prompt = build_prompts(context, jobs, locale)

        try:
            completion = await self._client.complete(
                system_prompt, user_prompt, max_tokens=self._max_tokens
            )
        except (anthropic.APIError, openai.APIError, httpx.HTTPError, asyncio.TimeoutError) as e:
            raise AiAdvisorError("completion request failed", details={"error": str(e)}) from e

        summary, insights = parse_ai_payload(extract_json_object(completion.content))
        logger.info("ai_insights_parsed", count=len(insights), locale=locale.value)

        response = InsightResponse(
            insights=insights,
            summary=summary,
            source=InsightSource.AI,
            context=context,
        )
        if generated_at is not None:
            response.generated_at = generated_at
        return response
