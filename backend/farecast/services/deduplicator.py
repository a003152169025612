import logging
import math
from typing import Dict, Iterable, List

from farecast.schemas.flight import FlightOffer

logger = logging.getLogger(__name__)


def is_usable_price(price: float) -> bool:
    return isinstance(price, (int, float)) and math.isfinite(price) and price > 0


def dedupe_offers(offers: Iterable[FlightOffer]) -> List[FlightOffer]:
    """
    Collapse offers for the same physical flight into one, keeping the cheapest.

    Offers are keyed by (carrier, flight number, depart, arrive). A later offer
    replaces the stored one only if strictly cheaper, so on a price tie the
    first one seen (highest-priority provider) wins. Output follows the order
    in which keys were first seen. Offers without a finite positive price are
    discarded.
    """
    seen: Dict[tuple, FlightOffer] = {}
    unusable = 0

    for offer in offers:
        if not is_usable_price(offer.price):
            unusable += 1
            continue
        key = offer.dedup_key
        current = seen.get(key)
        if current is None or offer.price < current.price:
            # Re-assigning an existing key keeps its original insertion slot
            seen[key] = offer

    if unusable:
        logger.info(f"Discarded {unusable} offers with missing or non-positive price")

    return list(seen.values())
