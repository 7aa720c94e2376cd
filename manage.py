import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import click

from prop_tracker.config import get_settings
from prop_tracker.database import get_session, init_db
from prop_tracker.export import (
    export_filename,
    export_window,
    load_lines,
    parlay_text,
    ppp_lines,
    to_csv,
    today_lines,
)
from prop_tracker.ingest import IngestionEngine

# Setup Logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
logger = logging.getLogger(__name__)


@click.group()
def cli():
    """NBA alternate player-prop odds tracker"""
    pass


@cli.command()
def setup():
    """Creates the database and tables."""
    init_db(get_settings().DATABASE_URL)
    click.echo("✅ Database setup complete.")


@cli.command()
def fetch():
    """
    Pulls alternate player-prop odds from The Odds API and upserts them.
    """
    settings = get_settings()
    init_db(settings.DATABASE_URL)
    session = get_session(settings.DATABASE_URL)
    try:
        engine = IngestionEngine(session, settings)
        logger.info("🚀 Starting fetch...")
        summary = engine.run()
        click.echo(summary.model_dump_json(indent=2))
    except Exception as e:
        logger.error(f"Fetch failed: {e}", exc_info=True)
        raise
    finally:
        session.close()


@cli.command()
@click.option('--all', 'all_rows', is_flag=True, help='Ignore the lookback/lookahead window')
@click.option('--today', is_flag=True, help='Only games starting today in DASHBOARD_TIMEZONE')
def latest(all_rows, today):
    """Dumps stored rows as JSON."""
    settings = get_settings()
    init_db(settings.DATABASE_URL)
    session = get_session(settings.DATABASE_URL)
    try:
        start, end = (None, None) if all_rows else export_window(datetime.now(timezone.utc), settings)
        lines = load_lines(session, start, end)
    finally:
        session.close()

    if today:
        lines = today_lines(lines, settings.DASHBOARD_TIMEZONE)
    rows = [line.model_dump(mode='json') for line in lines]
    click.echo(json.dumps({'ok': True, 'rows': rows, 'count': len(rows)}, indent=2))


@cli.command('export-csv')
@click.option('--out-dir', default='.', type=click.Path(file_okay=False), help='Directory for the CSV file')
def export_csv(out_dir):
    """Writes the current window of odds to a timestamped CSV."""
    settings = get_settings()
    init_db(settings.DATABASE_URL)
    now = datetime.now(timezone.utc)
    session = get_session(settings.DATABASE_URL)
    try:
        lines = load_lines(session, *export_window(now, settings))
    finally:
        session.close()

    path = Path(out_dir) / export_filename(now)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(to_csv(lines), encoding='utf-8')
    click.echo(f"✅ Wrote {len(lines)} rows to {path}")


@cli.command()
@click.option('--price', type=int, default=None, help='Pinned price (defaults to PPP_PRICE)')
def ppp(price):
    """Lists lines priced the same on both sides (default -114 / -114)."""
    settings = get_settings()
    price = settings.PPP_PRICE if price is None else price
    init_db(settings.DATABASE_URL)
    session = get_session(settings.DATABASE_URL)
    try:
        lines = ppp_lines(load_lines(session), price)
    finally:
        session.close()

    if not lines:
        click.echo(f"No {price} / {price} props found.")
        return
    click.echo(f"PPP ({price} / {price} Props): {len(lines)}\n")
    click.echo(parlay_text(lines))


@cli.command()
def view_data():
    """Quick peek at the most recently fetched rows in the DB."""
    settings = get_settings()
    init_db(settings.DATABASE_URL)
    session = get_session(settings.DATABASE_URL)
    try:
        lines = sorted(load_lines(session), key=lambda line: line.fetched_at, reverse=True)[:5]
    finally:
        session.close()

    click.echo("\n--- Latest 5 Lines ---")
    for s in lines:
        click.echo(f"[{s.fetched_at}] {s.bookmaker_key} | {s.market_key} | {s.player} {s.line:g} "
                   f"O {s.over_price} (first {s.first_over_price}) / U {s.under_price} (first {s.first_under_price})")


if __name__ == '__main__':
    cli()
