"""Job store reading from a Supabase (PostgREST) endpoint over httpx."""

from collections.abc import Callable
from typing import Any

import httpx
import structlog

from roof_insights.config import get_settings
from roof_insights.errors import AggregationError
from roof_insights.models import (
    ActiveJob,
    ChecklistRow,
    ExpenseRow,
    MilestoneRow,
    TimeEntryRow,
)
from roof_insights.store.base import JobStore, RowT, Scope, group_by_job

logger = structlog.get_logger(__name__)


JOB_COLUMNS = (
    "id,client_name,workflow_stage,estimated_total,"
    "simple_materials_budget,simple_labor_budget,simple_other_budget,"
    "start_date,deadline_date,status,client_status"
)


def _in_filter(job_ids: list[str]) -> str:
    return "in.(" + ",".join(f'"{job_id}"' for job_id in job_ids) + ")"


class SupabaseJobStore(JobStore):
    """Async PostgREST client for the job and ledger tables."""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        if api_key is None and settings.supabase_service_key is not None:
            api_key = settings.supabase_service_key.get_secret_value()
        self._api_key = api_key or ""
        self._timeout = timeout or settings.data_store_timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "SupabaseJobStore":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def _get_headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _select(self, table: str, params: dict[str, str]) -> list[dict[str, Any]]:
        """Run a PostgREST select and return the rows."""
        client = await self._get_client()
        try:
            response = await client.get(
                f"/rest/v1/{table}", params=params, headers=self._get_headers()
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "data_store_error",
                table=table,
                status=e.response.status_code,
                error=str(e),
            )
            raise AggregationError(
                f"Failed to read {table}",
                details={"table": table, "status": e.response.status_code},
            ) from e
        except httpx.RequestError as e:
            logger.error("data_store_unreachable", table=table, error=str(e))
            raise AggregationError(
                f"Data store unreachable while reading {table}", details={"table": table}
            ) from e

        data = response.json()
        if not isinstance(data, list):
            raise AggregationError(f"Invalid response format for {table}")
        return data

    async def _ledger(
        self,
        table: str,
        columns: str,
        job_ids: list[str],
        parse: Callable[[dict[str, Any]], RowT],
    ) -> dict[str, list[RowT]]:
        if not job_ids:
            return {}
        rows = await self._select(table, {"select": columns, "job_id": _in_filter(job_ids)})
        return group_by_job(parse(row) for row in rows)

    async def active_jobs(self, scope: Scope) -> list[ActiveJob]:
        params = {
            "select": JOB_COLUMNS,
            "client_status": "not.eq.rejected",
            "status": "not.eq.completed",
        }
        if scope.organization_id:
            params["organization_id"] = f"eq.{scope.organization_id}"
        else:
            params["user_id"] = f"eq.{scope.user_id}"

        rows = await self._select("jobs", params)
        logger.debug("active_jobs_fetched", scope=scope.key, count=len(rows))
        return [ActiveJob.from_row(row) for row in rows]

    async def checklist_rows(self, job_ids: list[str]) -> dict[str, list[ChecklistRow]]:
        return await self._ledger(
            "material_checklist", "job_id,actual_cost,is_checked", job_ids, ChecklistRow.from_row
        )

    async def time_entries(self, job_ids: list[str]) -> dict[str, list[TimeEntryRow]]:
        return await self._ledger(
            "time_entries", "job_id,hours,hourly_rate", job_ids, TimeEntryRow.from_row
        )

    async def expenses(self, job_ids: list[str]) -> dict[str, list[ExpenseRow]]:
        return await self._ledger("expenses", "job_id,amount", job_ids, ExpenseRow.from_row)

    async def milestones(self, job_ids: list[str]) -> dict[str, list[MilestoneRow]]:
        return await self._ledger(
            "job_milestones",
            "job_id,stage,scheduled_date,completed_date",
            job_ids,
            MilestoneRow.from_row,
        )
