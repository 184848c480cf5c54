"""Data model for job cost aggregation and business insights.

Ledger rows mirror what the data store returns. Derived records
(JobCostRecord, OrgContext) are rebuilt on every pipeline run and never
persisted.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

ZERO = Decimal("0")


def to_decimal(value: Any) -> Decimal:
    """Coerce a stored numeric value to Decimal; anything unusable is 0."""
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value if value.is_finite() else ZERO
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return ZERO
    return result if result.is_finite() else ZERO


def to_amount(value: Any) -> Decimal:
    """Coerce a stored money or quantity value; negatives count as unusable (0)."""
    result = to_decimal(value)
    return result if result > 0 else ZERO


def to_date(value: Any) -> date | None:
    """Parse an ISO date (or datetime prefix) into a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        return None


class FallbackEnum(str, Enum):
    """String enum that maps unknown values to OTHER instead of raising."""

    @classmethod
    def _missing_(cls, value: object) -> FallbackEnum:
        if isinstance(value, str):
            normalized = value.strip().lower()
            for member in cls:
                if member.value == normalized:
                    return member
        return cls["OTHER"]

    @classmethod
    def coerce(cls, value: Any) -> FallbackEnum:
        """Build a member from any input, degrading to OTHER."""
        return cls(value)


class JobType(FallbackEnum):
    """Kinds of roofing work a job can describe."""

    REPAIR = "repair"
    REROOF = "reroof"
    NEW_ROOF = "new_roof"
    GUTTERS = "gutters"
    WATERPROOFING = "waterproofing"
    OTHER = "other"


class RoofType(FallbackEnum):
    """Roof material types."""

    SHINGLE = "shingle"
    TILE = "tile"
    METAL = "metal"
    FLAT = "flat"
    OTHER = "other"


class Locale(str, Enum):
    """Languages the insight copy and prompts are written in."""

    EN = "en"
    ES = "es"

    @classmethod
    def _missing_(cls, value: object) -> Locale:
        if isinstance(value, str) and value.strip().lower().startswith("es"):
            return cls.ES
        return cls.EN


class InsightKind(str, Enum):
    """Insight categories, declared in priority order."""

    RISK = "risk"
    ACTION = "action"
    OPPORTUNITY = "opportunity"

    @property
    def priority(self) -> int:
        return _KIND_PRIORITY[self]

    @property
    def icon(self) -> str:
        return _KIND_ICONS[self]


_KIND_PRIORITY = {InsightKind.RISK: 0, InsightKind.ACTION: 1, InsightKind.OPPORTUNITY: 2}
_KIND_ICONS = {InsightKind.RISK: "⚠️", InsightKind.ACTION: "✅", InsightKind.OPPORTUNITY: "💡"}

MAX_INSIGHTS = 3


class InsightSource(str, Enum):
    """Which path produced a response's insights and summary."""

    AI = "ai"
    FALLBACK = "fallback"


# === Ledger rows ===


@dataclass(frozen=True)
class ActiveJob:
    """A job row as returned by the active-jobs query."""

    id: str
    client_name: str = ""
    workflow_stage: str = ""
    estimated_total: Decimal = ZERO
    materials_budget: Decimal = ZERO
    labor_budget: Decimal = ZERO
    other_budget: Decimal = ZERO
    start_date: date | None = None
    deadline_date: date | None = None
    status: str = ""
    client_status: str = ""

    @property
    def budget(self) -> Decimal:
        return self.materials_budget + self.labor_budget + self.other_budget

    @property
    def is_rejected_by_client(self) -> bool:
        return self.client_status == "rejected"

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"

    @property
    def is_active(self) -> bool:
        # Two independently settable flags; either one retires the job.
        return not (self.is_rejected_by_client or self.is_completed)

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ActiveJob:
        return cls(
            id=str(row["id"]),
            client_name=str(row.get("client_name") or ""),
            workflow_stage=str(row.get("workflow_stage") or ""),
            estimated_total=to_amount(row.get("estimated_total")),
            materials_budget=to_amount(row.get("simple_materials_budget")),
            labor_budget=to_amount(row.get("simple_labor_budget")),
            other_budget=to_amount(row.get("simple_other_budget")),
            start_date=to_date(row.get("start_date")),
            deadline_date=to_date(row.get("deadline_date")),
            status=str(row.get("status") or ""),
            client_status=str(row.get("client_status") or ""),
        )


@dataclass(frozen=True)
class ChecklistRow:
    job_id: str
    actual_cost: Decimal = ZERO
    is_checked: bool = False

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ChecklistRow:
        return cls(
            job_id=str(row["job_id"]),
            actual_cost=to_amount(row.get("actual_cost")),
            is_checked=bool(row.get("is_checked")),
        )


@dataclass(frozen=True)
class TimeEntryRow:
    job_id: str
    hours: Decimal = ZERO
    hourly_rate: Decimal = ZERO

    @property
    def cost(self) -> Decimal:
        return self.hours * self.hourly_rate

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> TimeEntryRow:
        return cls(
            job_id=str(row["job_id"]),
            hours=to_amount(row.get("hours")),
            hourly_rate=to_amount(row.get("hourly_rate")),
        )


@dataclass(frozen=True)
class ExpenseRow:
    job_id: str
    amount: Decimal = ZERO

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> ExpenseRow:
        return cls(job_id=str(row["job_id"]), amount=to_amount(row.get("amount")))


@dataclass(frozen=True)
class MilestoneRow:
    job_id: str
    stage: str = ""
    scheduled_date: date | None = None
    completed_date: date | None = None

    def is_pending_on(self, day: date) -> bool:
        return self.scheduled_date == day and self.completed_date is None

    @property
    def is_pending(self) -> bool:
        return self.scheduled_date is not None and self.completed_date is None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> MilestoneRow:
        return cls(
            job_id=str(row["job_id"]),
            stage=str(row.get("stage") or ""),
            scheduled_date=to_date(row.get("scheduled_date")),
            completed_date=to_date(row.get("completed_date")),
        )


# === Derived records ===


@dataclass(frozen=True)
class JobCostRecord:
    """Per-job cost picture computed fresh on every run."""

    job_id: str
    client_name: str
    stage: str
    contract_value: Decimal
    budget: Decimal
    materials_cost: Decimal
    labor_cost: Decimal
    expense_cost: Decimal
    pending_milestones_today: int = 0
    pending_milestone_stages: tuple[str, ...] = ()
    deadline: date | None = None

    @property
    def actual_cost(self) -> Decimal:
        return self.materials_cost + self.labor_cost + self.expense_cost

    @property
    def is_over_budget(self) -> bool:
        # A job without declared budget buckets is never "over" it.
        return self.budget > 0 and self.actual_cost > self.budget

    def to_dict(self) -> dict[str, Any]:
        return {
            "jobId": self.job_id,
            "client": self.client_name,
            "stage": self.stage,
            "contract": float(self.contract_value),
            "budget": float(self.budget),
            "actual": float(self.actual_cost),
            "overBudget": self.is_over_budget,
            "deadline": self.deadline.isoformat() if self.deadline else None,
            "pendingMilestones": list(self.pending_milestone_stages),
        }


@dataclass(frozen=True)
class OrgContext:
    """Organization-wide aggregate over all active jobs."""

    active_jobs: int = 0
    total_contract_value: Decimal = ZERO
    total_actual_cost: Decimal = ZERO
    jobs_over_budget: int = 0
    pending_milestones: int = 0

    @property
    def jobs_on_track(self) -> int:
        return self.active_jobs - self.jobs_over_budget

    @property
    def burn_rate_pct(self) -> Decimal:
        if self.total_contract_value <= 0:
            return ZERO
        return self.total_actual_cost / self.total_contract_value * 100

    @classmethod
    def from_jobs(cls, jobs: list[JobCostRecord]) -> OrgContext:
        return cls(
            active_jobs=len(jobs),
            total_contract_value=sum((j.contract_value for j in jobs), ZERO),
            total_actual_cost=sum((j.actual_cost for j in jobs), ZERO),
            jobs_over_budget=sum(1 for j in jobs if j.is_over_budget),
            pending_milestones=sum(j.pending_milestones_today for j in jobs),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "activeJobs": self.active_jobs,
            "totalContractValue": float(self.total_contract_value),
            "totalActualCost": float(self.total_actual_cost),
            "burnRate": float(self.burn_rate_pct),
            "jobsOverBudget": self.jobs_over_budget,
            "jobsOnTrack": self.jobs_on_track,
            "pendingMilestones": self.pending_milestones,
        }


@dataclass(frozen=True)
class Insight:
    kind: InsightKind
    title: str
    body: str

    @property
    def key(self) -> tuple[InsightKind, str]:
        return (self.kind, self.title.strip().lower())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "icon": self.kind.icon,
            "title": self.title,
            "body": self.body,
        }


def rank_insights(insights: list[Insight], limit: int = MAX_INSIGHTS) -> list[Insight]:
    """Deduplicate on kind+title, order risk > action > opportunity, cap at limit.

    The sort is stable, so insights of the same kind keep their input order.
    """
    seen: set[tuple[InsightKind, str]] = set()
    unique: list[Insight] = []
    for insight in insights:
        if insight.key in seen:
            continue
        seen.add(insight.key)
        unique.append(insight)
    unique.sort(key=lambda i: i.kind.priority)
    return unique[:limit]


@dataclass
class InsightResponse:
    """Uniform payload returned to the UI and the PDF renderer."""

    insights: list[Insight]
    summary: str
    source: InsightSource
    context: OrgContext
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "insights": [i.to_dict() for i in self.insights],
            "summary": self.summary,
            "generatedAt": self.generated_at.isoformat(),
            "source": self.source.value,
            "context": self.context.to_dict(),
        }
