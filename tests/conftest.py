"""Pytest configuration and fixtures."""

import os
from datetime import date
from typing import Any

import pytest

# Set test environment variables before importing settings
os.environ["ANTHROPIC_API_KEY"] = "sk-ant-test"
os.environ["OPENAI_API_KEY"] = "sk-test"

from roof_insights.clients.claude import CompletionResponse  # noqa: E402
from roof_insights.store.memory import InMemoryJobStore  # noqa: E402

TODAY = date(2026, 10, 19)
ORG_ID = "22222222-2222-2222-2222-222222222222"
USER_ID = "11111111-1111-1111-1111-111111111111"


class FakeCompletionClient:
    """Completion client returning canned text or raising a canned error."""

    def __init__(self, content: str = "", error: BaseException | None = None):
        self.content = content
        self.error = error
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self, system_prompt: str, user_prompt: str, max_tokens: int | None = None
    ) -> CompletionResponse:
        self.calls.append(
            {"system_prompt": system_prompt, "user_prompt": user_prompt, "max_tokens": max_tokens}
        )
        if self.error is not None:
            raise self.error
        return CompletionResponse(
            content=self.content,
            stop_reason="end_turn",
            usage={"input_tokens": 100, "output_tokens": 50},
        )


def make_job(job_id: str, **overrides: Any) -> dict[str, Any]:
    """A jobs-table row in the test organization."""
    row = {
        "id": job_id,
        "organization_id": ORG_ID,
        "user_id": USER_ID,
        "client_name": "John Doe",
        "workflow_stage": "in_progress",
        "estimated_total": "10000.00",
        "simple_materials_budget": "5000.00",
        "simple_labor_budget": "2500.00",
        "simple_other_budget": "500.00",
        "start_date": "2026-10-01",
        "deadline_date": "2026-11-15",
        "status": "in_progress",
        "client_status": "approved",
    }
    row.update(overrides)
    return row


@pytest.fixture
def single_job_store():
    """One job: contract $10,000, budget $8,000, actual $9,200."""
    return InMemoryJobStore(
        jobs=[make_job("job-1")],
        material_checklist=[
            {"job_id": "job-1", "actual_cost": "4000.00", "is_checked": True},
            {"job_id": "job-1", "actual_cost": "1200.00", "is_checked": True},
        ],
        time_entries=[{"job_id": "job-1", "hours": "40", "hourly_rate": "75"}],
        expenses=[{"job_id": "job-1", "amount": "1000.00"}],
        job_milestones=[
            {
                "job_id": "job-1",
                "stage": "tear_off",
                "scheduled_date": TODAY.isoformat(),
                "completed_date": None,
            }
        ],
    )


@pytest.fixture
def empty_store():
    return InMemoryJobStore()


@pytest.fixture
def ai_payload_text():
    """A well-formed completion wrapped in chatty prose."""
    return (
        "Here you go:\n"
        '{"summary": "One job is running hot.", "insights": ['
        '{"type": "opportunity", "icon": "💡", "title": "Offer maintenance", '
        '"body": "Pitch an annual inspection plan."},'
        '{"type": "risk", "icon": "⚠️", "title": "Cost overrun", '
        '"body": "John Doe is 15% over budget."}'
        "]}\n"
        "Hope that helps!"
    )
