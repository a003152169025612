import asyncio
import logging
from dataclasses import replace
from datetime import date, timedelta
from typing import List, Optional

from farecast.schemas.flight import FlexDateEntry
from farecast.services.flight_price_fetcher import FlightPriceFetcher, SearchQuery
from farecast.services.history_store import HistoryStore
from farecast.utils.clock import utc_today

logger = logging.getLogger(__name__)

FLEX_OFFSETS = (-3, -2, -1, 1, 2, 3)


class FlexibleDateScanner:
    """
    Cheapest price for a few days either side of the searched date.

    Recorded history is preferred; dates without history are re-queried from
    the providers. Only prices in the base search's currency are compared.
    """

    def __init__(self, history: HistoryStore, fetcher: FlightPriceFetcher):
        self.history = history
        self.fetcher = fetcher

    def _from_history(self, query: SearchQuery, day: date) -> Optional[float]:
        outcome = self.history.min_price_for_date(query.origin, query.destination, day, query.currency)
        return outcome.value if outcome.succeeded else None

    async def _from_providers(self, query: SearchQuery, day: date) -> Optional[float]:
        try:
            offers = await self.fetcher.search(replace(query, departure_date=day))
        except Exception as e:
            logger.warning(f"Flexible date search failed for {day}: {e}")
            return None
        prices = [o.price for o in offers if o.currency == query.currency]
        return min(prices) if prices else None

    async def scan(
        self,
        query: SearchQuery,
        base_min_price: float,
        today: Optional[date] = None,
    ) -> List[FlexDateEntry]:
        today = today or utc_today()
        found: dict[int, float] = {}
        pending: dict[int, date] = {}

        for offset in FLEX_OFFSETS:
            day = query.departure_date + timedelta(days=offset)
            price = self._from_history(query, day)
            if price is not None:
                found[offset] = price
            elif day >= today:
                pending[offset] = day

        if pending:
            prices = await asyncio.gather(
                *(self._from_providers(query, day) for day in pending.values())
            )
            for offset, price in zip(pending.keys(), prices):
                if price is not None:
                    found[offset] = price

        return [
            FlexDateEntry(
                date=query.departure_date + timedelta(days=offset),
                offset=offset,
                min_price=price,
                currency=query.currency,
                cheaper_than_base=price < base_min_price,
            )
            for offset, price in sorted(found.items())
        ]
