import pytest
from pydantic import ValidationError

from prop_tracker.config import Settings, _default_db_url
from prop_tracker.markets import ALT_NBA_PLAYER_PROP_MARKETS, game_label, team_abbrev


def test_defaults(monkeypatch):
    monkeypatch.delenv("ODDS_API_KEY", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    s = Settings(_env_file=None)

    assert s.ODDS_API_KEY == ""
    assert s.markets == list(ALT_NBA_PLAYER_PROP_MARKETS)
    assert s.regions == ["us"]
    assert s.bookmakers == []
    assert s.KEEP_ONE_SIDED_LINES is False
    assert s.DATABASE_URL == _default_db_url()


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ODDS_API_KEY", "abc")
    monkeypatch.setenv("ODDS_API_BOOKMAKERS", "draftkings,,fanduel ")
    monkeypatch.setenv("KEEP_ONE_SIDED_LINES", "true")
    monkeypatch.setenv("MAX_EVENTS_PER_RUN", "5")
    s = Settings(_env_file=None)

    assert s.ODDS_API_KEY == "abc"
    assert s.bookmakers == ["draftkings", "fanduel"]
    assert s.KEEP_ONE_SIDED_LINES is True
    assert s.MAX_EVENTS_PER_RUN == 5


def test_blank_database_url_falls_back(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "  ")
    assert Settings(_env_file=None).DATABASE_URL == _default_db_url()


def test_batch_size_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(_env_file=None, UPSERT_BATCH_SIZE=0)


def test_game_label_abbreviates_known_teams():
    assert game_label("Boston Celtics", "New York Knicks") == "BOS @ NYK"
    assert game_label("Team Giannis", " LA Clippers ") == "Team Giannis @ LAC"
    assert team_abbrev(None) == ""
