import json
from datetime import datetime, timedelta, timezone

import pytest
from click.testing import CliRunner

import manage
from conftest import odds_line
from prop_tracker.config import Settings
from prop_tracker.database import get_session, init_db, upsert_lines
from prop_tracker.schemas import RunSummary


@pytest.fixture
def cli_settings(tmp_path, monkeypatch):
    s = Settings(_env_file=None, ODDS_API_KEY="k", DATABASE_URL=f"sqlite:///{tmp_path}/props.db")
    monkeypatch.setattr(manage, "get_settings", lambda: s)
    init_db(s.DATABASE_URL)
    session = get_session(s.DATABASE_URL)
    tip_off = datetime.now(timezone.utc) + timedelta(hours=1)
    upsert_lines(session, [
        odds_line(-114, -114, first_over=-110, first_under=-118, commence_time=tip_off),
        odds_line(-110, -110, player="Jayson Tatum", commence_time=tip_off),
    ])
    session.commit()
    session.close()
    return s


def test_latest_dumps_rows(cli_settings):
    result = CliRunner().invoke(manage.cli, ["latest"])

    assert result.exit_code == 0, result.output
    body = json.loads(result.stdout)
    assert body["ok"] is True
    assert body["count"] == 2
    assert {r["player"] for r in body["rows"]} == {"Jalen Brunson", "Jayson Tatum"}


def test_export_csv_writes_file(cli_settings, tmp_path):
    out = tmp_path / "exports"
    result = CliRunner().invoke(manage.cli, ["export-csv", "--out-dir", str(out)])

    assert result.exit_code == 0, result.output
    files = list(out.glob("alt-nba-props-*.csv"))
    assert len(files) == 1
    assert files[0].read_text().count("\n") == 3


def test_ppp_lists_pinned_lines(cli_settings):
    result = CliRunner().invoke(manage.cli, ["ppp"])

    assert result.exit_code == 0, result.output
    assert "Jalen Brunson" in result.output
    assert "Jayson Tatum" not in result.output

    result = CliRunner().invoke(manage.cli, ["ppp", "--price", "-200"])
    assert "No -200 / -200 props found." in result.output


def test_fetch_prints_summary(cli_settings, monkeypatch):
    class StubEngine:
        def __init__(self, session, settings):
            assert settings is cli_settings

        def run(self):
            return RunSummary(events=2, rows=7, took_ms=12)

    monkeypatch.setattr(manage, "IngestionEngine", StubEngine)
    result = CliRunner().invoke(manage.cli, ["fetch"])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout)["rows"] == 7


def test_view_data(cli_settings):
    result = CliRunner().invoke(manage.cli, ["view-data"])

    assert result.exit_code == 0, result.output
    assert "Latest 5 Lines" in result.output


def test_scheduled_entry_point_runs_one_cycle(cli_settings, monkeypatch):
    import main

    class StubEngine:
        def __init__(self, session, settings):
            pass

        def run(self):
            return RunSummary(events=1, rows=3, per_event=[{"event_id": "evt1", "rows": 3, "remaining": "9"}])

    monkeypatch.setattr(main, "get_settings", lambda: cli_settings)
    monkeypatch.setattr(main, "IngestionEngine", StubEngine)

    summary = main.run_fetch_cycle()

    assert summary.rows == 3
    assert summary.per_event[0].remaining == "9"


@pytest.mark.parametrize("args", [["latest"], ["export-csv"], ["ppp"], ["view-data"]])
def test_read_commands_work_on_a_fresh_database(args, tmp_path, monkeypatch):
    s = Settings(_env_file=None, DATABASE_URL=f"sqlite:///{tmp_path}/fresh/props.db")
    monkeypatch.setattr(manage, "get_settings", lambda: s)
    if args == ["export-csv"]:
        args = args + ["--out-dir", str(tmp_path / "out")]

    result = CliRunner().invoke(manage.cli, args)

    assert result.exit_code == 0, result.output
    if args == ["latest"]:
        assert json.loads(result.stdout)["count"] == 0
