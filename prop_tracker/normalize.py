"""
Outcome grouping for alternate player-prop odds.

The Odds API returns one outcome per side of a line; a bookmaker lists an
"Over" and an "Under" entry for every (player, point) it offers. The
functions here flatten an event-odds payload into RawOutcome records, merge
the two sides into one OddsLine per natural key, and apply the policy for
lines where one side is missing.
"""
import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence

from pydantic import ValidationError

from .markets import game_label, market_label
from .schemas import LineKey, OddsLine, RawOutcome

logger = logging.getLogger(__name__)

OVER = "Over"
UNDER = "Under"


class InputShapeError(ValueError):
    """The payload as a whole is not shaped like an Odds API response."""


def _as_list(value: Any, what: str) -> list:
    if value is None:
        return []
    if not isinstance(value, list):
        raise InputShapeError(f"Expected a list for {what}, got {type(value).__name__}")
    return value


def _mappings(items: list) -> Iterator[Mapping]:
    for item in items:
        if isinstance(item, Mapping):
            yield item


def flatten_event_odds(
    payload: Any,
    fetched_at: datetime,
    market_keys: Optional[Sequence[str]] = None,
) -> List[RawOutcome]:
    """
    Turn one /events/{id}/odds response into RawOutcome records.

    Markets outside `market_keys` are skipped (some books return extras).
    Outcomes that fail validation are dropped here; the rest of the
    data-quality rules live in group_outcomes().
    """
    if not isinstance(payload, Mapping):
        raise InputShapeError(f"Expected an event object, got {type(payload).__name__}")
    if not isinstance(payload.get("id"), str) or not payload["id"]:
        raise InputShapeError(f"Event payload has no id: {payload.get('id')!r}")

    allowed = set(market_keys) if market_keys is not None else None
    away, home = payload.get("away_team"), payload.get("home_team")
    event = {
        "event_id": payload.get("id"),
        "sport_key": payload.get("sport_key"),
        "commence_time": payload.get("commence_time"),
        "home_team": home,
        "away_team": away,
        "game": game_label(away, home),
        "fetched_at": fetched_at,
    }

    out: List[RawOutcome] = []
    dropped = 0
    for book in _mappings(_as_list(payload.get("bookmakers"), "bookmakers")):
        for market in _mappings(_as_list(book.get("markets"), "markets")):
            market_key = market.get("key")
            if allowed is not None and market_key not in allowed:
                continue

            for o in _mappings(_as_list(market.get("outcomes"), "outcomes")):
                try:
                    out.append(RawOutcome(
                        **event,
                        bookmaker_key=book.get("key"),
                        bookmaker_title=book.get("title"),
                        market_key=market_key,
                        market_name=market_label(market_key),
                        last_update=market.get("last_update") or book.get("last_update"),
                        player=o.get("description"),
                        point=o.get("point"),
                        side=o.get("name"),
                        price=o.get("price"),
                    ))
                except ValidationError as e:
                    dropped += 1
                    logger.debug(f"Dropping malformed outcome {o!r}: {e.error_count()} errors")

    if dropped:
        logger.info(f"Dropped {dropped} malformed outcomes for event {event['event_id']}")
    return out


def _side_of(label: Optional[str]) -> Optional[str]:
    s = (label or "").strip().lower()
    if s.startswith("over"):
        return OVER
    if s.startswith("under"):
        return UNDER
    return None


def _american(price: Optional[float]) -> Optional[int]:
    """American odds are whole numbers; anything else is malformed."""
    if price is None or not math.isfinite(price) or price != int(price):
        return None
    return int(price)


def group_outcomes(outcomes: Iterable[RawOutcome]) -> List[OddsLine]:
    """
    Merge Over/Under outcomes into one OddsLine per
    (event_id, bookmaker_key, market_key, player, line).

    Player names are compared exactly after trimming. Within one batch the
    last Over and the last Under seen for a key win; descriptive fields come
    from the first outcome of the group. Bad outcomes are skipped.
    """
    if not isinstance(outcomes, Iterable) or isinstance(outcomes, (str, bytes, Mapping)):
        raise InputShapeError(f"Expected an iterable of outcomes, got {type(outcomes).__name__}")

    groups: Dict[LineKey, OddsLine] = {}
    unknown_sides = 0

    for o in outcomes:
        if not isinstance(o, RawOutcome):
            continue

        player = (o.player or "").strip()
        if not player or o.point is None:
            continue

        price = _american(o.price)
        if price is None:
            continue

        side = _side_of(o.side)
        if side is None:
            unknown_sides += 1
            logger.debug(f"Unrecognized side {o.side!r} for {player} {o.point} ({o.bookmaker_key})")
            continue

        key = LineKey(o.event_id, o.bookmaker_key, o.market_key, player, o.point)
        row = groups.get(key)
        if row is None:
            row = OddsLine(
                event_id=o.event_id,
                bookmaker_key=o.bookmaker_key,
                market_key=o.market_key,
                player=player,
                line=o.point,
                sport_key=o.sport_key,
                commence_time=o.commence_time,
                home_team=o.home_team,
                away_team=o.away_team,
                game=o.game,
                bookmaker_title=o.bookmaker_title,
                market_name=o.market_name,
                last_update=o.last_update,
                fetched_at=o.fetched_at,
            )
            groups[key] = row

        if side == OVER:
            row.over_price = price
        else:
            row.under_price = price

    if unknown_sides:
        logger.warning(f"Skipped {unknown_sides} outcomes with an unrecognized side label")

    return list(groups.values())


def filter_lines(lines: Iterable[OddsLine], keep_one_sided: bool = False) -> List[OddsLine]:
    """
    Apply the one-sided line policy. Lines with no price at all never pass;
    with keep_one_sided=False both prices are required.
    """
    kept = []
    for line in lines:
        if line.over_price is None and line.under_price is None:
            continue
        if not keep_one_sided and not line.is_two_sided:
            continue
        kept.append(line)
    return kept


def outcomes_from_line(line: OddsLine) -> List[RawOutcome]:
    """Split a stored line back into the Over/Under outcomes it came from."""
    base = line.model_dump(
        include={
            "event_id", "sport_key", "commence_time", "home_team", "away_team", "game",
            "bookmaker_key", "bookmaker_title", "market_key", "market_name",
            "player", "last_update", "fetched_at",
        }
    )
    out = []
    if line.over_price is not None:
        out.append(RawOutcome(**base, point=line.line, side=OVER, price=line.over_price))
    if line.under_price is not None:
        out.append(RawOutcome(**base, point=line.line, side=UNDER, price=line.under_price))
    return out
