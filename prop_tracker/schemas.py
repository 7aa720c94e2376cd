from datetime import datetime
from typing import List, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LineKey(NamedTuple):
    """Natural key of one market line for one bookmaker and event."""
    event_id: str
    bookmaker_key: str
    market_key: str
    player: str
    line: float


class RawOutcome(BaseModel):
    """One side (Over or Under) of a player-prop line, as delivered upstream."""
    # Event
    event_id: str
    sport_key: Optional[str] = None
    commence_time: Optional[datetime] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    game: Optional[str] = None

    # Bookmaker / market
    bookmaker_key: str
    bookmaker_title: Optional[str] = None
    market_key: str
    market_name: Optional[str] = None
    last_update: Optional[datetime] = None

    # Outcome
    player: Optional[str] = None
    point: Optional[float] = None
    side: Optional[str] = None
    price: Optional[float] = None

    fetched_at: datetime

    @field_validator("point", "price", mode="before")
    @classmethod
    def _no_bools(cls, v):
        # bool is an int subclass; a True price is a provider bug, not +1
        if isinstance(v, bool):
            raise ValueError("boolean is not a number")
        return v


class OddsLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    # Natural key
    event_id: str
    bookmaker_key: str
    market_key: str
    player: str
    line: float

    # Descriptive
    sport_key: Optional[str] = None
    commence_time: Optional[datetime] = None
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    game: Optional[str] = None
    bookmaker_title: Optional[str] = None
    market_name: Optional[str] = None

    # Live prices
    over_price: Optional[int] = None
    under_price: Optional[int] = None

    # Prices observed the first time this key was stored
    first_over_price: Optional[int] = None
    first_under_price: Optional[int] = None

    last_update: Optional[datetime] = None
    fetched_at: datetime

    @property
    def key(self) -> LineKey:
        return LineKey(self.event_id, self.bookmaker_key, self.market_key, self.player, self.line)

    @property
    def is_two_sided(self) -> bool:
        return self.over_price is not None and self.under_price is not None


class EventRun(BaseModel):
    event_id: str
    rows: int
    remaining: Optional[str] = None
    used: Optional[str] = None
    last: Optional[str] = None


class RunSummary(BaseModel):
    ok: bool = True
    events: int = 0
    rows: int = 0
    took_ms: int = 0
    per_event: List[EventRun] = Field(default_factory=list)
