from datetime import date
from typing import Optional

from farecast.schemas.base import ApiModel
from farecast.schemas.advice import AdviceResult
from farecast.schemas.flight import FlightOffer, FlexDateEntry


class SearchRequest(ApiModel):
    origin_code: str
    destination_code: str
    departure_date: date
    return_date: Optional[date] = None
    trip_type: str = "oneway"
    travelers: int = 1
    cabin: str = "ECONOMY"
    currency: str = "USD"
    flexible_dates: bool = False
    origin_label: Optional[str] = None
    destination_label: Optional[str] = None

    @property
    def is_round_trip(self) -> bool:
        return self.trip_type == "round"


class SearchMeta(ApiModel):
    origin_code: str
    destination_code: str
    origin_label: Optional[str] = None
    destination_label: Optional[str] = None
    departure_date: date
    return_date: Optional[date] = None
    trip_type: str
    currency: str
    cabin: str
    travelers: int


class SearchResponse(ApiModel):
    flights: list[FlightOffer]
    model: Optional[AdviceResult] = None
    flexible_dates: list[FlexDateEntry]
    meta: SearchMeta
