from typing import Optional

from .schemas import OddsLine


def preserve_first_seen(candidate: OddsLine, previous: Optional[OddsLine] = None) -> OddsLine:
    """
    Compute the row to persist for `candidate` given the stored row for the
    same natural key (or None if the key has never been stored).

    Current prices always come from the candidate. first_over_price and
    first_under_price keep the stored value when there is one; legacy rows
    with a null first-seen value take the candidate's current price.
    Neither argument is modified.
    """
    first_over = previous.first_over_price if previous is not None else None
    first_under = previous.first_under_price if previous is not None else None

    return candidate.model_copy(update={
        "first_over_price": first_over if first_over is not None else candidate.over_price,
        "first_under_price": first_under if first_under is not None else candidate.under_price,
    })
