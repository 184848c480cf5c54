"""In-memory job store backed by plain row dicts (fixtures, CLI snapshots, tests)."""

import json
from pathlib import Path
from typing import Any

from roof_insights.models import (
    ActiveJob,
    ChecklistRow,
    ExpenseRow,
    MilestoneRow,
    TimeEntryRow,
)
from roof_insights.store.base import JobStore, Scope, group_by_job


class InMemoryJobStore(JobStore):
    """Serves rows shaped like the relational tables, keyed by table name."""

    def __init__(
        self,
        jobs: list[dict[str, Any]] | None = None,
        material_checklist: list[dict[str, Any]] | None = None,
        time_entries: list[dict[str, Any]] | None = None,
        expenses: list[dict[str, Any]] | None = None,
        job_milestones: list[dict[str, Any]] | None = None,
    ):
        self._jobs = list(jobs or [])
        self._checklist = [ChecklistRow.from_row(r) for r in material_checklist or []]
        self._time_entries = [TimeEntryRow.from_row(r) for r in time_entries or []]
        self._expenses = [ExpenseRow.from_row(r) for r in expenses or []]
        self._milestones = [MilestoneRow.from_row(r) for r in job_milestones or []]

    @classmethod
    def from_json(cls, path: str | Path) -> "InMemoryJobStore":
        """Load a fixture file with one list per table."""
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(
            jobs=data.get("jobs"),
            material_checklist=data.get("material_checklist"),
            time_entries=data.get("time_entries"),
            expenses=data.get("expenses"),
            job_milestones=data.get("job_milestones"),
        )

    def _in_scope(self, row: dict[str, Any], scope: Scope) -> bool:
        if scope.organization_id:
            return row.get("organization_id") == scope.organization_id
        return row.get("user_id") == scope.user_id

    async def active_jobs(self, scope: Scope) -> list[ActiveJob]:
        jobs = [ActiveJob.from_row(r) for r in self._jobs if self._in_scope(r, scope)]
        return [job for job in jobs if job.is_active]

    async def checklist_rows(self, job_ids: list[str]) -> dict[str, list[ChecklistRow]]:
        wanted = set(job_ids)
        return group_by_job(r for r in self._checklist if r.job_id in wanted)

    async def time_entries(self, job_ids: list[str]) -> dict[str, list[TimeEntryRow]]:
        wanted = set(job_ids)
        return group_by_job(r for r in self._time_entries if r.job_id in wanted)

    async def expenses(self, job_ids: list[str]) -> dict[str, list[ExpenseRow]]:
        wanted = set(job_ids)
        return group_by_job(r for r in self._expenses if r.job_id in wanted)

    async def milestones(self, job_ids: list[str]) -> dict[str, list[MilestoneRow]]:
        wanted = set(job_ids)
        return group_by_job(r for r in self._milestones if r.job_id in wanted)
