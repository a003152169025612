import asyncio
import httpx
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from farecast.config import get_settings
from farecast.schemas.flight import FlightOffer
from farecast.services.deduplicator import dedupe_offers, is_usable_price
from farecast.services.normalizer import normalize_offers
from farecast.utils.clock import utcnow

logger = logging.getLogger(__name__)
settings = get_settings()

T = TypeVar("T")


@dataclass(frozen=True)
class SearchQuery:
    origin: str
    destination: str
    departure_date: date
    return_date: Optional[date] = None
    adults: int = 1
    cabin: str = "ECONOMY"
    currency: str = "USD"


@dataclass
class FetchResult:
    success: bool
    offers: List[dict] = field(default_factory=list)
    source: str = "unknown"
    error: Optional[str] = None
    attempts: int = 1


async def first_non_empty(
    operations: Sequence[Tuple[str, Callable[[], Awaitable[List[T]]]]],
    timeout: float,
    is_usable: Callable[[List[T]], bool] = bool,
) -> Tuple[List[T], Optional[str]]:
    """
    Run fallible operations in order until one yields a usable result.

    Each operation is bounded by *timeout*. A timeout or exception is logged
    and treated like an empty result, so one broken provider never aborts
    the chain. Returns the winning result and the name that produced it.
    """
    for name, operation in operations:
        try:
            result = await asyncio.wait_for(operation(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{name}: timed out after {timeout:.0f}s")
            continue
        except Exception as e:
            logger.warning(f"{name}: failed ({type(e).__name__}: {e})")
            continue

        if result and is_usable(result):
            return list(result), name
        logger.info(f"{name}: no usable results, trying next source")

    return [], None


class PriceSource(ABC):
    name: str = "base"
    max_retries: int = 1
    retry_delay: float = 1.0

    @abstractmethod
    async def fetch_offers(self, query: SearchQuery) -> FetchResult:
        pass

    @abstractmethod
    def is_available(self) -> bool:
        pass

    async def fetch_with_retry(self, query: SearchQuery) -> FetchResult:
        last_error = None

        for attempt in range(self.max_retries + 1):
            if attempt > 0:
                delay = self.retry_delay * (2 ** (attempt - 1)) + random.uniform(0, self.retry_delay)
                logger.info(f"{self.name}: Retry {attempt}/{self.max_retries} after {delay:.1f}s")
                await asyncio.sleep(delay)

            result = await self.fetch_offers(query)
            result.attempts = attempt + 1

            if result.success:
                return result

            last_error = result.error

            if "not configured" in (result.error or ""):
                break

        return FetchResult(
            success=False,
            source=self.name,
            error=last_error,
            attempts=self.max_retries + 1,
        )


class AmadeusSource(PriceSource):
    """
    Amadeus Self-Service flight offers.

    The OAuth token and its expiry belong to this instance. Concurrent
    searches that find the token expired share a single refresh.
    """
    name = "amadeus"

    def __init__(self, client_id: str = "", client_secret: str = "", base_url: Optional[str] = None):
        self.client_id = client_id or settings.amadeus_client_id
        self.client_secret = client_secret or settings.amadeus_client_secret
        self.base_url = (base_url or settings.amadeus_base_url).rstrip("/")
        self._token: Optional[str] = None
        self._token_expires: Optional[datetime] = None
        self._token_lock = asyncio.Lock()

    def is_available(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def _token_valid(self) -> bool:
        return bool(self._token and self._token_expires and utcnow() < self._token_expires)

    async def _get_token(self) -> Optional[str]:
        if self._token_valid():
            return self._token

        async with self._token_lock:
            # Another search may have refreshed while we waited on the lock
            if self._token_valid():
                return self._token

            try:
                async with httpx.AsyncClient(timeout=10.0) as client:
                    response = await client.post(
                        f"{self.base_url}/v1/security/oauth2/token",
                        data={
                            "grant_type": "client_credentials",
                            "client_id": self.client_id,
                            "client_secret": self.client_secret,
                        },
                    )
                    response.raise_for_status()
                    data = response.json()
                    self._token = data["access_token"]
                    self._token_expires = utcnow() + timedelta(
                        seconds=data.get("expires_in", 1799) - 60
                    )
                    return self._token
            except Exception as e:
                logger.warning(f"Amadeus auth failed: {e}")
                return None

    async def fetch_offers(self, query: SearchQuery) -> FetchResult:
        if not self.is_available():
            return FetchResult(success=False, source=self.name, error="API credentials not configured")

        token = await self._get_token()
        if not token:
            return FetchResult(success=False, source=self.name, error="Failed to authenticate")

        try:
            params = {
                "originLocationCode": query.origin,
                "destinationLocationCode": query.destination,
                "departureDate": query.departure_date.isoformat(),
                "adults": query.adults,
                "currencyCode": query.currency,
                "max": 20,
            }
            if query.return_date:
                params["returnDate"] = query.return_date.isoformat()
            if query.cabin and query.cabin.upper() != "ECONOMY":
                params["travelClass"] = query.cabin.upper()

            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.get(
                    f"{self.base_url}/v2/shopping/flight-offers",
                    headers={"Authorization": f"Bearer {token}"},
                    params=params,
                )
                response.raise_for_status()
                data = response.json()

            return FetchResult(success=True, offers=data.get("data") or [], source=self.name)

        except httpx.HTTPStatusError as e:
            return FetchResult(success=False, source=self.name, error=f"HTTP {e.response.status_code}")
        except Exception as e:
            return FetchResult(success=False, source=self.name, error=str(e))


class SkyscannerSource(PriceSource):
    name = "skyscanner"

    def __init__(self, api_key: str = "", base_url: Optional[str] = None):
        self.api_key = api_key or settings.skyscanner_api_key
        self.base_url = (base_url or settings.skyscanner_base_url).rstrip("/")

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def fetch_offers(self, query: SearchQuery) -> FetchResult:
        if not self.is_available():
            return FetchResult(success=False, source=self.name, error="API key not configured")

        try:
            params = {
                "origin": query.origin,
                "destination": query.destination,
                "departureDate": query.departure_date.isoformat(),
                "adults": query.adults,
                "cabinClass": (query.cabin or "economy").lower(),
                "currency": query.currency,
                "apiKey": self.api_key,
            }
            if query.return_date:
                params["returnDate"] = query.return_date.isoformat()

            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.get(f"{self.base_url}/flights/search", params=params)
                response.raise_for_status()
                data = response.json()

            deep_link = data.get("deepLink")
            offers = [
                {**itinerary, "deepLink": deep_link} if deep_link else itinerary
                for itinerary in data.get("itineraries") or []
            ]
            return FetchResult(success=True, offers=offers, source=self.name)

        except httpx.HTTPStatusError as e:
            return FetchResult(success=False, source=self.name, error=f"HTTP {e.response.status_code}")
        except Exception as e:
            return FetchResult(success=False, source=self.name, error=str(e))


class SerpAPISource(PriceSource):
    name = "serpapi"

    CLASS_MAP = {"ECONOMY": 1, "PREMIUM_ECONOMY": 2, "BUSINESS": 3, "FIRST": 4}

    def __init__(self, api_key: str = "", country: Optional[str] = None):
        self.api_key = api_key or settings.serpapi_key
        self.country = country or settings.serpapi_country

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def fetch_offers(self, query: SearchQuery) -> FetchResult:
        if not self.is_available():
            return FetchResult(success=False, source=self.name, error="API key not configured")

        try:
            params = {
                "engine": "google_flights",
                "departure_id": query.origin,
                "arrival_id": query.destination,
                "outbound_date": query.departure_date.isoformat(),
                "currency": query.currency,
                "adults": query.adults,
                "travel_class": self.CLASS_MAP.get((query.cabin or "").upper(), 1),
                "type": "1" if query.return_date else "2",
                "gl": self.country,
                "hl": "en",
                "api_key": self.api_key,
            }
            if query.return_date:
                params["return_date"] = query.return_date.isoformat()

            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.get("https://serpapi.com/search", params=params)
                response.raise_for_status()
                data = response.json()

            google_url = (data.get("search_metadata") or {}).get("google_flights_url")
            offers = []
            for flight in (data.get("best_flights") or []) + (data.get("other_flights") or []):
                offers.append({**flight, "google_flights_url": google_url} if google_url else flight)

            return FetchResult(success=True, offers=offers, source=self.name)

        except httpx.HTTPStatusError as e:
            return FetchResult(success=False, source=self.name, error=f"HTTP {e.response.status_code}")
        except Exception as e:
            return FetchResult(success=False, source=self.name, error=str(e))


class FlightPriceFetcher:
    """Provider chain: first source to return usable offers wins."""

    def __init__(self, sources: Optional[List[PriceSource]] = None, timeout: Optional[float] = None):
        if sources is None:
            sources = [AmadeusSource(), SkyscannerSource(), SerpAPISource()]
            for source in sources:
                source.max_retries = settings.provider_max_retries
                source.retry_delay = settings.provider_retry_delay
        self.sources: List[PriceSource] = sources
        self.timeout = timeout or settings.provider_timeout_seconds

    def get_available_sources(self) -> List[str]:
        return [s.name for s in self.sources if s.is_available()]

    def get_status(self) -> dict:
        return {
            "sources": {s.name: {"available": s.is_available()} for s in self.sources},
            "total_available": sum(1 for s in self.sources if s.is_available()),
        }

    def _operation(self, source: PriceSource, query: SearchQuery) -> Callable[[], Awaitable[List[FlightOffer]]]:
        async def run() -> List[FlightOffer]:
            logger.info(f"Trying {source.name} for {query.origin}-{query.destination} on {query.departure_date}")
            result = await source.fetch_with_retry(query)
            if not result.success:
                logger.warning(f"{source.name}: {result.error}")
                return []
            return normalize_offers(
                source.name, result.offers, query.origin, query.destination, query.currency
            )
        return run

    async def search(self, query: SearchQuery) -> List[FlightOffer]:
        operations = []
        for source in self.sources:
            if not source.is_available():
                logger.debug(f"Skipping {source.name} - not configured")
                continue
            operations.append((source.name, self._operation(source, query)))

        if not operations:
            logger.warning("No flight sources configured")
            return []

        offers, winner = await first_non_empty(
            operations,
            timeout=self.timeout,
            is_usable=lambda found: any(is_usable_price(o.price) for o in found),
        )
        if winner is None:
            logger.warning(f"All sources returned nothing for {query.origin}-{query.destination}")
            return []

        flights = dedupe_offers(offers)
        logger.info(f"{winner}: {len(flights)} offers after dedup for {query.origin}-{query.destination}")
        return flights
