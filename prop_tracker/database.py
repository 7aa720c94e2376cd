from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from sqlalchemy import Column, DateTime, Float, Integer, String, UniqueConstraint, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .schemas import LineKey, OddsLine

Base = declarative_base()

# --- HELPER FUNCTIONS ---
_engines: Dict[str, Engine] = {}
_sessionmakers: Dict[str, sessionmaker] = {}


def get_engine(database_url: str) -> Engine:
    if database_url not in _engines:
        _engines[database_url] = create_engine(database_url)
    return _engines[database_url]


def get_session(database_url: str) -> Session:
    if database_url not in _sessionmakers:
        _sessionmakers[database_url] = sessionmaker(bind=get_engine(database_url))
    return _sessionmakers[database_url]()


def init_db(database_url: str) -> Engine:
    if database_url.startswith("sqlite:///") and ":memory:" not in database_url:
        Path(database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url)
    Base.metadata.create_all(engine)
    return engine


def utc_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


# --- MODELS ---

class OddsLineRecord(Base):
    __tablename__ = 'odds_lines_current'
    __table_args__ = (
        UniqueConstraint('event_id', 'bookmaker_key', 'market_key', 'player', 'line',
                         name='uq_odds_lines_natural_key'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Natural key
    event_id = Column(String, nullable=False, index=True)
    bookmaker_key = Column(String, nullable=False)
    market_key = Column(String, nullable=False)
    player = Column(String, nullable=False)
    line = Column(Float, nullable=False)

    sport_key = Column(String)
    commence_time = Column(DateTime, index=True)
    home_team = Column(String)
    away_team = Column(String)
    game = Column(String)
    bookmaker_title = Column(String)
    market_name = Column(String, nullable=True)

    over_price = Column(Integer, nullable=True)
    under_price = Column(Integer, nullable=True)
    first_over_price = Column(Integer, nullable=True)
    first_under_price = Column(Integer, nullable=True)

    last_update = Column(DateTime, nullable=True)
    fetched_at = Column(DateTime, default=datetime.utcnow)


_DATETIME_FIELDS = ("commence_time", "last_update", "fetched_at")


def _record_values(line: OddsLine) -> Dict:
    values = line.model_dump()
    for f in _DATETIME_FIELDS:
        values[f] = utc_naive(values[f])
    return values


def _filter_key(key: LineKey):
    return (
        (OddsLineRecord.event_id == key.event_id)
        & (OddsLineRecord.bookmaker_key == key.bookmaker_key)
        & (OddsLineRecord.market_key == key.market_key)
        & (OddsLineRecord.player == key.player)
        & (OddsLineRecord.line == key.line)
    )


def get_line(session: Session, key: LineKey) -> Optional[OddsLine]:
    """Point lookup by natural key."""
    record = session.query(OddsLineRecord).filter(_filter_key(key)).first()
    return OddsLine.model_validate(record) if record is not None else None


def upsert_lines(session: Session, lines: Iterable[OddsLine], batch_size: int = 500) -> int:
    """
    Insert or replace rows matching each line's natural key. Flushes every
    `batch_size` rows; committing is left to the caller.
    """
    count = 0
    for line in lines:
        values = _record_values(line)
        record = session.query(OddsLineRecord).filter(_filter_key(line.key)).first()
        if record is None:
            session.add(OddsLineRecord(**values))
        else:
            for field, value in values.items():
                setattr(record, field, value)
        count += 1
        if count % batch_size == 0:
            session.flush()
    session.flush()
    return count


def query_lines(session: Session, start: Optional[datetime] = None,
                end: Optional[datetime] = None) -> List[OddsLine]:
    """Stored rows, optionally windowed on commence_time (inclusive)."""
    q = session.query(OddsLineRecord)
    if start is not None:
        q = q.filter(OddsLineRecord.commence_time >= utc_naive(start))
    if end is not None:
        q = q.filter(OddsLineRecord.commence_time <= utc_naive(end))
    q = q.order_by(
        OddsLineRecord.game.asc(),
        OddsLineRecord.player.asc(),
        OddsLineRecord.market_key.asc(),
        OddsLineRecord.line.desc(),
    )
    return [OddsLine.model_validate(r) for r in q.all()]
