"""
Search orchestration.

Providers -> normalize/dedup -> price statistics -> heuristic + seasonal
advice -> blend. The history snapshot and seasonal update are handed to a
background task on their own session once the response is ready, so storage
never delays or fails a search: the worst case is a neutral, low-confidence
recommendation.
"""
import asyncio
import logging
from datetime import date
from typing import Callable, Optional, Set

from sqlalchemy.orm import Session

from farecast.database import SessionLocal
from farecast.schemas.advice import AdviceResult
from farecast.schemas.flight import FlexDateEntry
from farecast.schemas.search import SearchMeta, SearchRequest, SearchResponse
from farecast.services.advice_blender import blend_advice
from farecast.services.flex_dates import FlexibleDateScanner
from farecast.services.flight_price_fetcher import FlightPriceFetcher, SearchQuery
from farecast.services.heuristic_advisor import days_until_departure, heuristic_advice
from farecast.services.history_store import HistoryStore
from farecast.services.price_stats import PriceStats, compute_price_stats
from farecast.services.seasonal_learner import SeasonalLearner
from farecast.utils.clock import utc_today

logger = logging.getLogger(__name__)

MIN_TRAVELERS = 1
MAX_TRAVELERS = 9

# Strong references so pending recordings are not garbage collected mid-flight
_pending_recordings: Set[asyncio.Task] = set()


async def wait_for_recordings() -> None:
    """Wait for every background recording scheduled so far (shutdown, tests)."""
    while _pending_recordings:
        await asyncio.gather(*list(_pending_recordings), return_exceptions=True)


class SearchService:
    def __init__(
        self,
        db: Session,
        fetcher: Optional[FlightPriceFetcher] = None,
        session_factory: Optional[Callable[[], Session]] = None,
    ):
        self.db = db
        self.fetcher = fetcher or FlightPriceFetcher()
        self.session_factory = session_factory or SessionLocal
        self.history = HistoryStore(db)
        self.learner = SeasonalLearner(db)
        self.flex_scanner = FlexibleDateScanner(self.history, self.fetcher)

    @staticmethod
    def build_query(request: SearchRequest) -> SearchQuery:
        return SearchQuery(
            origin=request.origin_code.upper(),
            destination=request.destination_code.upper(),
            departure_date=request.departure_date,
            return_date=request.return_date if request.is_round_trip else None,
            adults=min(max(request.travelers, MIN_TRAVELERS), MAX_TRAVELERS),
            cabin=request.cabin.upper(),
            currency=request.currency.upper(),
        )

    @staticmethod
    def build_meta(request: SearchRequest, query: SearchQuery) -> SearchMeta:
        return SearchMeta(
            origin_code=query.origin,
            destination_code=query.destination,
            origin_label=request.origin_label,
            destination_label=request.destination_label,
            departure_date=query.departure_date,
            return_date=query.return_date,
            trip_type=request.trip_type,
            currency=query.currency,
            cabin=query.cabin,
            travelers=query.adults,
        )

    async def search(self, request: SearchRequest, today: Optional[date] = None) -> SearchResponse:
        today = today or utc_today()
        query = self.build_query(request)
        meta = self.build_meta(request, query)

        try:
            flights = await self.fetcher.search(query)
        except Exception as e:
            logger.error(f"Provider chain failed for {query.origin}-{query.destination}: {e}")
            flights = []

        if not flights:
            logger.info(f"No flights found for {query.origin}-{query.destination} on {query.departure_date}")
            return SearchResponse(flights=[], model=None, flexible_dates=[], meta=meta)

        # Only offers in the requested currency feed the statistics
        priced = [f for f in flights if f.currency == query.currency]
        if not priced:
            logger.warning(
                f"No offers in {query.currency} for {query.origin}-{query.destination}; skipping advice"
            )
            return SearchResponse(flights=flights, model=None, flexible_dates=[], meta=meta)

        stats = compute_price_stats(priced)
        days_until = days_until_departure(query.departure_date, today)

        # Seasonal signal is read before this search's own observation is stored
        model = self._advise(query, stats, days_until)
        self._schedule_recording(query, stats, days_until, today)

        flexible: list[FlexDateEntry] = []
        if request.flexible_dates:
            try:
                flexible = await self.flex_scanner.scan(query, stats.min_price, today=today)
            except Exception as e:
                logger.warning(f"Flexible date scan failed for {query.origin}-{query.destination}: {e}")

        return SearchResponse(flights=flights, model=model, flexible_dates=flexible, meta=meta)

    def _advise(self, query: SearchQuery, stats: PriceStats, days_until: int) -> AdviceResult:
        heuristic = heuristic_advice(days_until, stats.min_price, stats.avg_price, stats.max_price)
        seasonal = self.learner.advise(query.origin, query.destination, query.departure_date)
        advice = blend_advice(heuristic, seasonal, stats.best_offer)
        logger.info(
            f"Advice {query.origin}-{query.destination} {query.departure_date}: "
            f"{advice.action.value} ({advice.confidence}) "
            f"[heuristic {heuristic.action.value}, seasonal {seasonal.action.value}]"
        )
        return advice

    def _schedule_recording(self, query: SearchQuery, stats: PriceStats, days_until: int, today: date) -> None:
        task = asyncio.create_task(
            asyncio.to_thread(self._record, query, stats, days_until, today)
        )
        _pending_recordings.add(task)
        task.add_done_callback(_pending_recordings.discard)

    def _record(self, query: SearchQuery, stats: PriceStats, days_until: int, today: date) -> None:
        """Persist the snapshot and seasonal observation on a fresh session; failures are logged only."""
        db = None
        try:
            db = self.session_factory()
            snapshot = HistoryStore(db).record_snapshot(
                query.origin,
                query.destination,
                query.departure_date,
                query.currency,
                stats,
                days_until,
                search_date=today,
            )
            if snapshot.is_failure:
                logger.warning(f"Snapshot not recorded: {snapshot.error}")

            observation = SeasonalLearner(db).record_observation(
                query.origin,
                query.destination,
                query.departure_date,
                days_until,
                stats.avg_price,
            )
            if observation.is_failure:
                logger.warning(f"Seasonal observation not recorded: {observation.error}")
        except Exception as e:
            logger.error(f"Recording search results failed for {query.origin}-{query.destination}: {e}")
        finally:
            if db is not None:
                db.close()
