#!/usr/bin/env python3
"""Write a realistic roofing-contractor fixture for ``roof-insights snapshot``.

This script creates:
1. One organization with a handful of jobs across workflow stages
2. Material checklist rows, time entries and expenses per job
3. Milestones, some scheduled for the snapshot date
4. A rejected job and a completed job that the pipeline must ignore

Usage:
    python scripts/seed_data.py fixtures/sample_org.json --today 2026-10-19
    roof-insights snapshot fixtures/sample_org.json --org org-demo --today 2026-10-19
"""

import argparse
import json
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from typing import Any

ORG_ID = "org-demo"
OWNER_ID = "user-demo"

# ============================================================================
# JOB DEFINITIONS
# ============================================================================

# (id, client, stage, contract, (materials, labor, other) budget, status, client_status)
JOBS = [
    ("job-1001", "Martinez Residence", "tear_off", "18500", ("8000", "6000", "1000"), "in_progress", "approved"),
    ("job-1002", "Oak Street Duplex", "install", "32000", ("14000", "10000", "2000"), "in_progress", "approved"),
    ("job-1003", "Hillside Church", "inspection", "9800", ("0", "0", "0"), "scheduled", "approved"),
    ("job-1004", "Riverside Cafe", "gutters", "4200", ("1500", "1200", "300"), "in_progress", "approved"),
    ("job-1005", "Parker Home", "estimate", "12000", ("5000", "4000", "500"), "draft", "rejected"),
    ("job-1006", "Lopez Warehouse", "final_walkthrough", "45000", ("20000", "15000", "3000"), "completed", "approved"),
]

# Materials per job: (actual cost, checked)
CHECKLIST = {
    "job-1001": [("6200.00", True), ("1850.00", True), ("420.00", False)],
    "job-1002": [("9100.00", True), ("2300.00", False)],
    "job-1003": [],
    "job-1004": [("1980.00", True)],
    "job-1006": [("19500.00", True)],
}

# Labor per job: (hours, hourly rate)
TIME_ENTRIES = {
    "job-1001": [("48", "65"), ("32", "55"), ("16", "55")],
    "job-1002": [("60", "65"), ("40", "55")],
    "job-1004": [("18", "60"), ("6", "45")],
    "job-1006": [("200", "60")],
}

EXPENSES = {
    "job-1001": ["650.00", "380.00"],
    "job-1002": ["1200.00"],
    "job-1004": ["95.00", "180.00"],
}

# Milestones: (stage, days from today, completed)
MILESTONES = {
    "job-1001": [("tear_off", -2, True), ("underlayment", 0, False), ("shingles", 3, False)],
    "job-1002": [("deck_repair", 0, False), ("install", 5, False)],
    "job-1003": [("inspection", 0, True)],
    "job-1004": [("gutters", 1, False)],
}


def _money(value: str) -> float:
    return float(Decimal(value))


def build_fixture(today: date) -> dict[str, list[dict[str, Any]]]:
    """Build one list of rows per table, dated relative to ``today``."""
    fixture: dict[str, list[dict[str, Any]]] = {
        "jobs": [],
        "material_checklist": [],
        "time_entries": [],
        "expenses": [],
        "job_milestones": [],
    }

    for offset, (job_id, client, stage, contract, budget, status, client_status) in enumerate(JOBS):
        materials, labor, other = budget
        fixture["jobs"].append(
            {
                "id": job_id,
                "organization_id": ORG_ID,
                "user_id": OWNER_ID,
                "client_name": client,
                "workflow_stage": stage,
                "estimated_total": _money(contract),
                "simple_materials_budget": _money(materials),
                "simple_labor_budget": _money(labor),
                "simple_other_budget": _money(other),
                "start_date": (today - timedelta(days=10 + offset)).isoformat(),
                "deadline_date": (today + timedelta(days=14 + offset * 3)).isoformat(),
                "status": status,
                "client_status": client_status,
            }
        )

    for job_id, rows in CHECKLIST.items():
        for cost, checked in rows:
            fixture["material_checklist"].append(
                {"job_id": job_id, "actual_cost": _money(cost), "is_checked": checked}
            )

    for job_id, rows in TIME_ENTRIES.items():
        for hours, rate in rows:
            fixture["time_entries"].append(
                {"job_id": job_id, "hours": _money(hours), "hourly_rate": _money(rate)}
            )

    for job_id, amounts in EXPENSES.items():
        for amount in amounts:
            fixture["expenses"].append({"job_id": job_id, "amount": _money(amount)})

    for job_id, rows in MILESTONES.items():
        for stage, days, completed in rows:
            scheduled = today + timedelta(days=days)
            fixture["job_milestones"].append(
                {
                    "job_id": job_id,
                    "stage": stage,
                    "scheduled_date": scheduled.isoformat(),
                    "completed_date": scheduled.isoformat() if completed else None,
                }
            )

    return fixture


def main() -> None:
    parser = argparse.ArgumentParser(description="Write a sample roofing fixture")
    parser.add_argument("output", type=Path, help="Where to write the JSON fixture")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=date.today(),
        help="Snapshot date the milestones are scheduled around (YYYY-MM-DD)",
    )
    args = parser.parse_args()

    fixture = build_fixture(args.today)
    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_text(json.dumps(fixture, indent=2) + "\n", encoding="utf-8")

    active = sum(
        1 for j in fixture["jobs"] if j["status"] != "completed" and j["client_status"] != "rejected"
    )
    print(f"Wrote {len(fixture['jobs'])} jobs ({active} active) to {args.output}")


if __name__ == "__main__":
    main()
