"""Tests for the command-line entry point."""

import io
import json
import sys
from unittest.mock import patch

import pytest
import structlog

from conftest import ORG_ID, TODAY, make_job
from roof_insights.__main__ import main
from roof_insights.config import configure_logging, get_settings


@pytest.fixture
def fixture_file(tmp_path):
    path = tmp_path / "org.json"
    path.write_text(
        json.dumps(
            {
                "jobs": [make_job("job-1"), make_job("job-2", client_status="rejected")],
                "time_entries": [{"job_id": "job-1", "hours": 10, "hourly_rate": 50}],
                "job_milestones": [
                    {"job_id": "job-1", "stage": "install", "scheduled_date": TODAY.isoformat()}
                ],
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def no_ai_key(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fresh_structlog():
    structlog.reset_defaults()
    yield
    structlog.reset_defaults()


def test_snapshot_stdout_is_pure_json(fixture_file, no_ai_key, fresh_structlog, capsys):
    exit_code = main(
        ["snapshot", str(fixture_file), "--org", ORG_ID, "--lang", "es", "--today", TODAY.isoformat()]
    )

    assert exit_code == 0
    payload = json.loads(capsys.readouterr().out)
    assert payload["source"] == "fallback"
    assert payload["context"]["activeJobs"] == 1
    assert payload["context"]["pendingMilestones"] == 1
    assert payload["context"]["burnRate"] == 5.0
    assert any(i["type"] == "action" for i in payload["insights"])
    assert payload["summary"].startswith("1 proyecto")


def test_snapshot_logs_to_stderr(fixture_file, no_ai_key):
    with patch("roof_insights.__main__.configure_logging") as configure:
        main(["snapshot", str(fixture_file), "--org", ORG_ID, "--today", TODAY.isoformat()])

    configure.assert_called_once_with(stream=sys.stderr)


def test_configure_logging_uses_given_stream(fresh_structlog):
    stream = io.StringIO()

    with patch("roof_insights.config.logging.logging.basicConfig") as basic_config:
        configure_logging(level="INFO", format="json", stream=stream)

    assert basic_config.call_args.kwargs["stream"] is stream


def test_unknown_command_exits():
    with pytest.raises(SystemExit):
        main(["explode"])
