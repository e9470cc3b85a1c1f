# tests/integration/test_cli.py
import json
from datetime import date, timedelta

import pytest

import main
from tests.utils import AIRBNB_URL, BOOKING_SHARE_URL

pytestmark = pytest.mark.integration


@pytest.fixture
def mock_env(monkeypatch, tmp_path):
    monkeypatch.setenv("LISTING_SCRAPE_PROVIDER", "mock")
    monkeypatch.setenv("LISTING_ANALYSIS_PROVIDER", "mock")
    monkeypatch.setenv("LISTING_RETRY_DELAY_S", "0")
    monkeypatch.setenv("LISTING_DATABASE_PATH", str(tmp_path / "data" / "diagnostics.db"))
    monkeypatch.setenv("LISTING_REPORTS_DIR", str(tmp_path / "reports"))
    return tmp_path


def _run(capsys, *argv):
    code = main.main(list(argv))
    return code, json.loads(capsys.readouterr().out)


def test_missing_configuration_exits_with_code_2(capsys):
    assert main.main(["status", "x"]) == 2
    assert "LISTING_SCRAPE_API_KEY" in capsys.readouterr().err


def test_submit_run_drain_and_kpi(mock_env, capsys):
    code, out = _run(
        capsys,
        "submit", "--name", "Ana", "--email", "ana@example.com",
        "--url", AIRBNB_URL, "--platform", "airbnb", "--run",
    )  # fmt: skip
    assert code == 0
    (result,) = out
    assert result["status"] == "completed"
    sub_id = result["submission_id"]

    code, jobs = _run(capsys, "drain-jobs")
    assert code == 0
    assert sorted(j["kind"] for j in jobs) == ["kpi", "report"]
    assert (mock_env / "reports" / f"{sub_id}.md").exists()

    today = date.today()
    start, end = (today - timedelta(days=1)).isoformat(), (today + timedelta(days=1)).isoformat()
    _, report = _run(capsys, "kpi", sub_id, "--start", start, "--end", end)
    assert report["summary"]["period_days"] == 1

    _, sentiment = _run(capsys, "sentiment", sub_id, "--start", start, "--end", end)
    assert sentiment["summary"]["overall_category"] == "positive"


def test_submit_batch_file_reports_failures(mock_env, capsys):
    requests_file = mock_env / "requests.json"
    requests_file.write_text(
        json.dumps(
            {
                "submissions": [
                    {"name": "Ana", "email": "bad", "property_url": AIRBNB_URL, "platform": "airbnb"},
                    {"name": "Bo", "email": "bo@example.com", "property_url": BOOKING_SHARE_URL, "platform": "booking"},
                ]
            }
        ),
        encoding="utf-8",
    )
    code, out = _run(capsys, "submit", "--file", str(requests_file))
    assert code == 1
    assert out[0]["success"] is False
    assert out[1]["status"] == "pending_manual_review"
    assert out[1]["error_reason"] == "incompatible_url"
