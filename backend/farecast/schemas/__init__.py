from farecast.schemas.flight import FlightOffer, FlexDateEntry
from farecast.schemas.advice import Action, Trend, SignalResult, SeasonalSignal, AdviceResult
from farecast.schemas.search import SearchRequest, SearchMeta, SearchResponse
from farecast.schemas.history import HistoryPoint, RouteCount, HistoryStats

__all__ = [
    "FlightOffer", "FlexDateEntry",
    "Action", "Trend", "SignalResult", "SeasonalSignal", "AdviceResult",
    "SearchRequest", "SearchMeta", "SearchResponse",
    "HistoryPoint", "RouteCount", "HistoryStats",
]
