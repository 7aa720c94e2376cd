from datetime import datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from prop_tracker.config import Settings
from prop_tracker.database import Base
from prop_tracker.schemas import OddsLine, RawOutcome

FETCHED_AT = datetime(2026, 1, 10, 18, 0, tzinfo=timezone.utc)
COMMENCE = datetime(2026, 1, 11, 0, 30, tzinfo=timezone.utc)


class FakeResponse:
    def __init__(self, status_code=200, data=None, headers=None, text=""):
        self.status_code = status_code
        self._data = data
        self.headers = headers or {}
        self.text = text
        self.reason = ""

    def json(self):
        return self._data


class FakeHTTPSession:
    """Stands in for requests.Session; replays queued responses or exceptions."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def settings():
    return Settings(_env_file=None, ODDS_API_KEY="test-key", DATABASE_URL="sqlite://")


@pytest.fixture
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


def outcome(side="Over", price=-110, point=24.5, player="Jalen Brunson", **kw):
    fields = dict(
        event_id="evt1",
        sport_key="basketball_nba",
        commence_time=COMMENCE,
        home_team="New York Knicks",
        away_team="Boston Celtics",
        game="BOS @ NYK",
        bookmaker_key="draftkings",
        bookmaker_title="DraftKings",
        market_key="player_points_alternate",
        market_name="Alternate Points (O/U)",
        last_update=FETCHED_AT,
        fetched_at=FETCHED_AT,
    )
    fields.update(kw)
    return RawOutcome(player=player, point=point, side=side, price=price, **fields)


def odds_line(over=-110, under=-110, first_over=None, first_under=None, **kw):
    fields = dict(
        event_id="evt1",
        bookmaker_key="draftkings",
        market_key="player_points_alternate",
        player="Jalen Brunson",
        line=24.5,
        sport_key="basketball_nba",
        commence_time=COMMENCE,
        home_team="New York Knicks",
        away_team="Boston Celtics",
        game="BOS @ NYK",
        bookmaker_title="DraftKings",
        market_name="Alternate Points (O/U)",
        last_update=FETCHED_AT,
        fetched_at=FETCHED_AT,
    )
    fields.update(kw)
    return OddsLine(over_price=over, under_price=under,
                    first_over_price=first_over, first_under_price=first_under, **fields)


def event_payload(event_id="evt1", bookmakers=None):
    return {
        "id": event_id,
        "sport_key": "basketball_nba",
        "commence_time": "2026-01-11T00:30:00Z",
        "home_team": "New York Knicks",
        "away_team": "Boston Celtics",
        "bookmakers": bookmakers if bookmakers is not None else [
            {
                "key": "draftkings",
                "title": "DraftKings",
                "last_update": "2026-01-10T17:59:00Z",
                "markets": [
                    {
                        "key": "player_points_alternate",
                        "last_update": "2026-01-10T17:58:00Z",
                        "outcomes": [
                            {"name": "Over", "description": "Jalen Brunson", "price": -110, "point": 24.5},
                            {"name": "Under", "description": "Jalen Brunson", "price": -120, "point": 24.5},
                            {"name": "Over", "description": "Jayson Tatum", "price": 150, "point": 34.5},
                        ],
                    }
                ],
            }
        ],
    }
