"""Cost aggregation: active jobs joined with their cost ledgers.

Actual cost for a job is the sum of three independent ledgers:

* material checklist rows, contributing their recorded ``actual_cost``
* time entries, contributing ``hours * hourly_rate``
* expenses, contributing ``amount``

A ledger with no rows for a job contributes zero. Nothing here is cached;
every call reads the store again.
"""

import asyncio
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

import structlog

from roof_insights.config import get_settings
from roof_insights.errors import AggregationError
from roof_insights.guards.sanitize import clean_text
from roof_insights.models import (
    ZERO,
    ActiveJob,
    ChecklistRow,
    ExpenseRow,
    JobCostRecord,
    MilestoneRow,
    OrgContext,
    TimeEntryRow,
)
from roof_insights.store.base import JobStore, Scope

logger = structlog.get_logger(__name__)


def is_active_job(job: ActiveJob) -> bool:
    """A job is active unless the client rejected it or it is completed."""
    return job.is_active


def materials_cost(rows: Iterable[ChecklistRow]) -> Decimal:
    return sum((row.actual_cost for row in rows), ZERO)


def labor_cost(rows: Iterable[TimeEntryRow]) -> Decimal:
    return sum((row.cost for row in rows), ZERO)


def expense_cost(rows: Iterable[ExpenseRow]) -> Decimal:
    return sum((row.amount for row in rows), ZERO)


@dataclass
class Aggregation:
    """Result of one aggregation run."""

    context: OrgContext
    jobs: list[JobCostRecord] = field(default_factory=list)
    today: date | None = None


class CostAggregator:
    """Builds per-job cost records and the org-wide context for one scope."""

    def __init__(self, store: JobStore, field_max_len: int | None = None):
        self._store = store
        self._field_max_len = field_max_len or get_settings().prompt_field_max_len

    async def aggregate(self, scope: Scope, today: date | None = None) -> Aggregation:
        """Compute the cost snapshot for ``scope`` as of ``today``.

        Raises:
            AggregationError: The data store could not be read.
        """
        today = today or date.today()
        log = logger.bind(scope=scope.key, today=today.isoformat())

        try:
            jobs = [job for job in await self._store.active_jobs(scope) if is_active_job(job)]
            if not jobs:
                log.info("aggregation_complete", active_jobs=0)
                return Aggregation(context=OrgContext(), today=today)

            job_ids = [job.id for job in jobs]
            checklist, time_entries, expenses, milestones = await asyncio.gather(
                self._store.checklist_rows(job_ids),
                self._store.time_entries(job_ids),
                self._store.expenses(job_ids),
                self._store.milestones(job_ids),
            )
        except AggregationError:
            raise
        except OSError as e:
            log.error("aggregation_failed", error=str(e))
            raise AggregationError("Data store unreachable", details={"scope": scope.key}) from e

        records = [
            self._build_record(
                job,
                checklist.get(job.id, []),
                time_entries.get(job.id, []),
                expenses.get(job.id, []),
                milestones.get(job.id, []),
                today,
            )
            for job in jobs
        ]
        context = OrgContext.from_jobs(records)

        log.info(
            "aggregation_complete",
            active_jobs=context.active_jobs,
            total_contract_value=str(context.total_contract_value),
            total_actual_cost=str(context.total_actual_cost),
            jobs_over_budget=context.jobs_over_budget,
            pending_milestones=context.pending_milestones,
        )
        return Aggregation(context=context, jobs=records, today=today)

    def _build_record(
        self,
        job: ActiveJob,
        checklist: list[ChecklistRow],
        time_entries: list[TimeEntryRow],
        expenses: list[ExpenseRow],
        milestones: list[MilestoneRow],
        today: date,
    ) -> JobCostRecord:
        return JobCostRecord(
            job_id=job.id,
            client_name=clean_text(job.client_name, self._field_max_len),
            stage=clean_text(job.workflow_stage, self._field_max_len),
            contract_value=job.estimated_total,
            budget=job.budget,
            materials_cost=materials_cost(checklist),
            labor_cost=labor_cost(time_entries),
            expense_cost=expense_cost(expenses),
            pending_milestones_today=sum(1 for m in milestones if m.is_pending_on(today)),
            pending_milestone_stages=tuple(
                clean_text(m.stage, self._field_max_len) for m in milestones if m.is_pending
            ),
            deadline=job.deadline_date,
        )
