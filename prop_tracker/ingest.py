import logging
import time
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from .client import OddsApiClient
from .config import Settings
from .database import get_line, upsert_lines
from .first_seen import preserve_first_seen
from .normalize import filter_lines, flatten_event_odds, group_outcomes
from .schemas import EventRun, OddsLine, RunSummary

logger = logging.getLogger(__name__)


def _parse_commence(value) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def select_upcoming(events: List[Dict], now: datetime, lookback_hours: float,
                    lookahead_hours: float, limit: int) -> List[Dict]:
    """
    Events starting within [now - lookback, now + lookahead], earliest first.
    The lookback keeps games that have just tipped off.
    """
    start = now - timedelta(hours=lookback_hours)
    end = now + timedelta(hours=lookahead_hours)

    window = []
    for e in events:
        if not isinstance(e, dict) or not e.get('id'):
            continue
        commence = _parse_commence(e.get('commence_time'))
        if commence is None:
            logger.debug(f"Skipping event with bad commence_time: {e.get('id')}")
            continue
        if start <= commence <= end:
            window.append((commence, e))

    window.sort(key=lambda pair: pair[0])
    return [e for _, e in window[:limit]]


class IngestionEngine:
    """Orchestrates fetching odds from the API and persisting them to the DB."""
    def __init__(self, db_session: Session, settings: Settings, client: Optional[OddsApiClient] = None):
        self.db = db_session
        self.settings = settings
        self.client = client or OddsApiClient(settings)

    def run(self, now: Optional[datetime] = None) -> RunSummary:
        started = time.monotonic()
        now = now or datetime.now(timezone.utc)
        logger.info("Starting ingestion cycle...")

        events = self.client.get_events()
        upcoming = select_upcoming(
            events,
            now,
            lookback_hours=self.settings.EVENTS_LOOKBACK_HOURS,
            lookahead_hours=self.settings.EVENTS_LOOKAHEAD_HOURS,
            limit=self.settings.MAX_EVENTS_PER_RUN,
        )
        logger.info(f"{len(upcoming)} of {len(events)} events inside the run window")

        summary = RunSummary(events=len(upcoming))
        for event in upcoming:
            result = self.process_event(event['id'])
            summary.per_event.append(result)
            summary.rows += result.rows

        summary.took_ms = int((time.monotonic() - started) * 1000)
        logger.info(f"Ingestion cycle complete: {summary.rows} rows across {summary.events} events "
                    f"in {summary.took_ms}ms")
        return summary

    def process_event(self, event_id: str) -> EventRun:
        fetched_at = datetime.now(timezone.utc)
        resp = self.client.get_event_odds(event_id)

        outcomes = flatten_event_odds(resp.data, fetched_at, self.settings.markets)
        grouped = group_outcomes(outcomes)
        lines = filter_lines(grouped, keep_one_sided=self.settings.KEEP_ONE_SIDED_LINES)
        logger.info(f"Event {event_id}: {len(outcomes)} outcomes -> {len(grouped)} lines, "
                    f"{len(lines)} kept (remaining quota: {resp.headers.get('remaining')})")

        try:
            rows = self.save_lines(lines)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return EventRun(event_id=event_id, rows=rows, **resp.headers)

    def save_lines(self, lines: List[OddsLine]) -> int:
        merged = [preserve_first_seen(line, get_line(self.db, line.key)) for line in lines]
        return upsert_lines(self.db, merged, batch_size=self.settings.UPSERT_BATCH_SIZE)
