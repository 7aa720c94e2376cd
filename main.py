import logging

from prop_tracker.config import get_settings
from prop_tracker.database import get_session, init_db
from prop_tracker.ingest import IngestionEngine

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger("fetch_cycle")


def run_fetch_cycle():
    """Entry point for the external scheduler: one fetch -> group -> upsert pass."""
    settings = get_settings()
    init_db(settings.DATABASE_URL)
    session = get_session(settings.DATABASE_URL)

    try:
        summary = IngestionEngine(session, settings).run()
    finally:
        session.close()

    for e in summary.per_event:
        logger.info(f"{e.event_id}: {e.rows} rows (remaining={e.remaining}, used={e.used}, last={e.last})")
    return summary


if __name__ == "__main__":
    run_fetch_cycle()
