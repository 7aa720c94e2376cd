"""
Read side of the odds table: the rows the dashboard filters, sorts and
downloads, plus the PPP (price-pinned pair) shortlist.
"""
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Tuple
from zoneinfo import ZoneInfo

import pandas as pd
from sqlalchemy.orm import Session

from .config import Settings
from .database import query_lines
from .schemas import OddsLine

EXPORT_COLUMNS = [
    'game',
    'player',
    'market_key',
    'market_name',
    'line',
    'over_price',
    'under_price',
    'first_over_price',
    'first_under_price',
    'over_move',
    'under_move',
    'bookmaker_title',
    'commence_time',
    'last_update',
    'fetched_at',
    'event_id',
]

_PRICE_COLUMNS = ['over_price', 'under_price', 'first_over_price', 'first_under_price',
                  'over_move', 'under_move']


def export_window(now: datetime, settings: Settings) -> Tuple[datetime, datetime]:
    return (now - timedelta(hours=settings.EVENTS_LOOKBACK_HOURS),
            now + timedelta(hours=settings.EVENTS_LOOKAHEAD_HOURS))


def load_lines(session: Session, start: Optional[datetime] = None,
               end: Optional[datetime] = None) -> List[OddsLine]:
    return query_lines(session, start, end)


def _move(current: Optional[int], first: Optional[int]) -> Optional[int]:
    if current is None or first is None:
        return None
    return current - first


def lines_frame(lines: Iterable[OddsLine]) -> pd.DataFrame:
    """Export columns, one row per line; moves are current minus first-seen."""
    records = []
    for line in lines:
        r = line.model_dump()
        r['over_move'] = _move(line.over_price, line.first_over_price)
        r['under_move'] = _move(line.under_price, line.first_under_price)
        records.append(r)

    df = pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)
    # nullable ints so a missing side does not turn the column into floats
    for col in _PRICE_COLUMNS:
        df[col] = df[col].astype('Int64')
    return df


def to_csv(lines: Iterable[OddsLine]) -> str:
    return lines_frame(lines).to_csv(index=False, date_format='%Y-%m-%dT%H:%M:%S')


def export_filename(now: datetime) -> str:
    return f"alt-nba-props-{now.strftime('%Y-%m-%d-%H-%M')}.csv"


def is_today(commence_time: Optional[datetime], tz: str, now: Optional[datetime] = None) -> bool:
    """True when the game starts on today's date in the given timezone."""
    if commence_time is None:
        return False
    zone = ZoneInfo(tz)
    if commence_time.tzinfo is None:
        # stored timestamps are naive UTC
        commence_time = commence_time.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    return commence_time.astimezone(zone).date() == now.astimezone(zone).date()


def today_lines(lines: Iterable[OddsLine], tz: str, now: Optional[datetime] = None) -> List[OddsLine]:
    return [line for line in lines if is_today(line.commence_time, tz, now)]


def ppp_lines(lines: Iterable[OddsLine], price: int = -114) -> List[OddsLine]:
    """Lines priced exactly `price` on both sides, sorted by game."""
    pinned = [line for line in lines if line.over_price == price and line.under_price == price]
    return sorted(pinned, key=lambda line: line.game or '')


def ppp_key(line: OddsLine) -> str:
    return f"{line.game}|{line.player}|{line.market_name}|{line.line:g}|{line.bookmaker_title}"


def parlay_text(lines: Iterable[OddsLine]) -> str:
    return "\n".join(
        f"{line.game} | {line.player} | {line.market_name} {line.line:g} | {line.bookmaker_title}"
        for line in lines
    )
