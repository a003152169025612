"""
Short-term booking heuristic.

A pure rule table over days-until-departure and the price spread of the live
search. Rules are evaluated in a fixed order; the first match wins.
"""
import math
from datetime import date, datetime, time
from typing import Optional, Union

from farecast.schemas.advice import Action, SignalResult
from farecast.utils.clock import utcnow

IMMINENT_DAYS = 7
FAR_DAYS = 30

IMMINENT_TIGHT_SPREAD = 0.10  # avg within 10% of min
FAR_HIGH_PREMIUM = 0.30  # avg more than 30% above min
MID_CLUSTERED_SPREAD = 0.10  # (max - min) under 10% of avg

REASON_IMMINENT_TIGHT = (
    "Departure is within 7 days and prices are clustered near the minimum; "
    "fares rarely fall this close to departure."
)
REASON_IMMINENT = (
    "Departure is within 7 days; fares rarely fall this close to departure."
)
REASON_FAR_HIGH = (
    "Departure is more than 30 days away and the average fare is over 30% above "
    "the cheapest; there is room for prices to improve."
)
REASON_FAR_OK = (
    "Departure is more than 30 days away and current fares are close to the cheapest "
    "observed."
)
REASON_MID_CLUSTERED = (
    "Departure is 8-30 days away and prices are tightly clustered; little upside in waiting."
)
REASON_MID_SPREAD = (
    "Departure is 8-30 days away and there is a meaningful spread between fares; "
    "prices may improve."
)
REASON_DEGENERATE = "Not enough data to infer a clear recommendation."

DateLike = Union[date, datetime]


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    return datetime.combine(value, time.min)


def days_until_departure(departure: DateLike, now: Optional[DateLike] = None) -> int:
    """Calendar days from *now* to *departure*, rounded to the nearest day."""
    start = _as_datetime(now if now is not None else utcnow().date())
    delta = _as_datetime(departure) - start
    return int(math.floor(delta.total_seconds() / 86400 + 0.5))


def _finite(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def heuristic_advice(
    days_until: float,
    min_price: float,
    avg_price: float,
    max_price: float,
) -> SignalResult:
    if not _finite(days_until):
        return SignalResult(action=Action.NO_SIGNAL, confidence=30, reason=REASON_DEGENERATE)

    prices_ok = all(_finite(v) for v in (min_price, avg_price, max_price)) and min_price > 0

    if days_until <= IMMINENT_DAYS:
        if prices_ok and avg_price <= min_price * (1 + IMMINENT_TIGHT_SPREAD):
            return SignalResult(action=Action.BOOK, confidence=85, reason=REASON_IMMINENT_TIGHT)
        return SignalResult(action=Action.BOOK, confidence=75, reason=REASON_IMMINENT)

    if not prices_ok:
        return SignalResult(action=Action.NO_SIGNAL, confidence=30, reason=REASON_DEGENERATE)

    if days_until > FAR_DAYS:
        if avg_price > min_price * (1 + FAR_HIGH_PREMIUM):
            return SignalResult(action=Action.WAIT, confidence=70, reason=REASON_FAR_HIGH)
        return SignalResult(action=Action.BOOK, confidence=60, reason=REASON_FAR_OK)

    if (max_price - min_price) < MID_CLUSTERED_SPREAD * avg_price:
        return SignalResult(action=Action.BOOK, confidence=65, reason=REASON_MID_CLUSTERED)
    return SignalResult(action=Action.WAIT, confidence=55, reason=REASON_MID_SPREAD)
