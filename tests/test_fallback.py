"""Tests for the deterministic fallback advisor."""

from datetime import datetime, timezone
from decimal import Decimal
from itertools import product

import pytest

from roof_insights.advisors.fallback import _COPY, _SUMMARIES, FallbackAdvisor, format_pct
from roof_insights.models import InsightKind, InsightSource, Locale, OrgContext


def _context(
    active_jobs: int = 2,
    contract: str = "10000",
    actual: str = "1000",
    over_budget: int = 0,
    milestones: int = 0,
) -> OrgContext:
    return OrgContext(
        active_jobs=active_jobs,
        total_contract_value=Decimal(contract),
        total_actual_cost=Decimal(actual),
        jobs_over_budget=over_budget,
        pending_milestones=milestones,
    )


@pytest.fixture
def advisor():
    return FallbackAdvisor(burn_rate_alert_pct=85)


class TestFallbackRules:
    """Tests for rule evaluation order and content."""

    def test_budget_alert_quotes_burn_rate(self, advisor):
        insights = advisor.insights(_context(actual="9200"))

        assert insights[0].kind is InsightKind.RISK
        assert insights[0].title == "Budget Alert"
        assert "92%" in insights[0].body

    def test_burn_rate_at_threshold_does_not_alert(self, advisor):
        insights = advisor.insights(_context(actual="8500"))

        assert all(i.title != "Budget Alert" for i in insights)

    def test_over_budget_risk_quotes_count(self, advisor):
        insights = advisor.insights(_context(over_budget=2))

        assert insights[0].kind is InsightKind.RISK
        assert insights[0].title == "Jobs Over Budget"
        assert insights[0].body.startswith("2 job(s)")

    def test_pending_milestones_action(self, advisor):
        insights = advisor.insights(_context(milestones=4))

        assert insights[0].kind is InsightKind.ACTION
        assert "4 milestone(s)" in insights[0].body

    def test_all_rules_fire_in_priority_order(self, advisor):
        insights = advisor.insights(_context(actual="9500", over_budget=1, milestones=1))

        assert [i.kind for i in insights] == [
            InsightKind.RISK,
            InsightKind.RISK,
            InsightKind.ACTION,
        ]
        assert [i.title for i in insights] == [
            "Budget Alert",
            "Jobs Over Budget",
            "Pending Milestones Today",
        ]

    def test_quiet_day_gets_follow_up_and_upsell(self, advisor):
        insights = advisor.insights(_context(active_jobs=3))

        assert [i.title for i in insights] == ["Proactive Follow-Up", "Upsell Opportunity"]
        assert "3 active job(s)" in insights[0].body

    def test_upsell_fills_when_fewer_than_three(self, advisor):
        insights = advisor.insights(_context(over_budget=1, milestones=2))

        assert [i.kind for i in insights] == [
            InsightKind.RISK,
            InsightKind.ACTION,
            InsightKind.OPPORTUNITY,
        ]
        assert insights[-1].title == "Upsell Opportunity"

    def test_no_active_jobs_yields_single_filler(self, advisor):
        insights = advisor.insights(OrgContext())

        assert len(insights) == 1
        assert insights[0].kind is InsightKind.OPPORTUNITY
        assert insights[0].title == "Upsell Opportunity"

    @pytest.mark.parametrize(
        "active,actual,over,milestones",
        list(product([0, 1, 5], ["0", "9000", "20000"], [0, 1], [0, 3])),
    )
    def test_always_between_one_and_three(self, advisor, active, actual, over, milestones):
        context = _context(
            active_jobs=active,
            contract="10000" if active else "0",
            actual=actual,
            over_budget=min(over, active),
            milestones=milestones,
        )

        insights = advisor.insights(context)

        assert 1 <= len(insights) <= 3
        priorities = [i.kind.priority for i in insights]
        assert priorities == sorted(priorities)


class TestFallbackResponse:
    """Tests for FallbackAdvisor.compute."""

    def test_source_is_fallback(self, advisor):
        response = advisor.compute(_context())

        assert response.source is InsightSource.FALLBACK

    def test_summary_with_jobs(self, advisor):
        response = advisor.compute(_context(active_jobs=2, actual="4550"))

        assert response.summary == "2 active job(s) with a 46% burn rate."

    def test_summary_without_jobs(self, advisor):
        response = advisor.compute(OrgContext())

        assert response.summary == "No active jobs to analyze today."

    def test_spanish_copy(self, advisor):
        response = advisor.compute(_context(actual="9200", over_budget=1), Locale.ES)

        assert response.insights[0].title == "Alerta de presupuesto"
        assert "92%" in response.insights[0].body
        assert response.summary == "2 proyecto(s) activo(s) con un burn rate del 92%."

    def test_generated_at_is_used(self, advisor):
        stamp = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)

        response = advisor.compute(_context(), generated_at=stamp)

        assert response.to_dict()["generatedAt"] == "2026-10-19T12:00:00+00:00"

    def test_threshold_from_settings(self):
        assert FallbackAdvisor().burn_rate_alert_pct == Decimal("85.0")


def test_format_pct_rounds_half_up():
    assert format_pct(Decimal("45.5")) == "46"
    assert format_pct(Decimal("92.00")) == "92"
    assert format_pct(Decimal("0")) == "0"


@pytest.mark.parametrize("locale", list(Locale))
def test_copy_tables_are_complete(locale):
    assert all(title and body for title, body in _COPY[locale].values())
    empty, template = _SUMMARIES[locale]
    assert empty
    assert "{count}" in template and "{burn}" in template
