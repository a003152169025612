from dataclasses import dataclass
from typing import Sequence

from farecast.schemas.flight import FlightOffer


@dataclass(frozen=True)
class PriceStats:
    min_price: float
    avg_price: float
    max_price: float
    best_offer: FlightOffer
    count: int


def compute_price_stats(offers: Sequence[FlightOffer]) -> PriceStats:
    """
    Min / mean / max over a deduplicated result set plus the cheapest offer.

    The cheapest offer is the first one carrying the minimum price. Callers
    handle the empty case themselves (no stats, no advice, no history).
    """
    if not offers:
        raise ValueError("compute_price_stats requires at least one offer")

    best = offers[0]
    total = 0.0
    max_price = offers[0].price
    for offer in offers:
        total += offer.price
        if offer.price < best.price:
            best = offer
        if offer.price > max_price:
            max_price = offer.price

    avg = total / len(offers)
    # Float summation can land a hair outside [min, max] for identical prices
    avg = min(max(avg, best.price), max_price)

    return PriceStats(
        min_price=best.price,
        avg_price=avg,
        max_price=max_price,
        best_offer=best,
        count=len(offers),
    )
