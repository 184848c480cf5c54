"""Read-only data store interface used by the cost aggregator."""

from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from roof_insights.models import (
    ActiveJob,
    ChecklistRow,
    ExpenseRow,
    MilestoneRow,
    TimeEntryRow,
)


class _HasJobId(Protocol):
    job_id: str


RowT = TypeVar("RowT", bound=_HasJobId)


@dataclass(frozen=True)
class Scope:
    """Whose jobs get aggregated: an organization, or a single user without one."""

    user_id: str
    organization_id: str | None = None

    @property
    def key(self) -> str:
        if self.organization_id:
            return f"org:{self.organization_id}"
        return f"user:{self.user_id}"


def group_by_job(rows: Iterable[RowT]) -> dict[str, list[RowT]]:
    """Group ledger rows by job id."""
    grouped: dict[str, list[RowT]] = defaultdict(list)
    for row in rows:
        grouped[row.job_id].append(row)
    return dict(grouped)


class JobStore(ABC):
    """Queries the aggregator needs.

    Ledger methods return a mapping of job id to rows. A job id with no rows
    may be absent from the mapping; that is a valid state, not an error.
    Implementations raise AggregationError when the store is unreachable.
    """

    @abstractmethod
    async def active_jobs(self, scope: Scope) -> list[ActiveJob]:
        """Jobs in scope that are neither rejected by the client nor completed."""

    @abstractmethod
    async def checklist_rows(self, job_ids: list[str]) -> dict[str, list[ChecklistRow]]:
        """Material checklist rows for the given jobs."""

    @abstractmethod
    async def time_entries(self, job_ids: list[str]) -> dict[str, list[TimeEntryRow]]:
        """Time entries for the given jobs."""

    @abstractmethod
    async def expenses(self, job_ids: list[str]) -> dict[str, list[ExpenseRow]]:
        """Expense rows for the given jobs."""

    @abstractmethod
    async def milestones(self, job_ids: list[str]) -> dict[str, list[MilestoneRow]]:
        """Schedule rows for the given jobs."""

    async def close(self) -> None:
        """Release any held resources."""
