import datetime as dt
from datetime import datetime

from pydantic import ConfigDict
from typing import Optional

from farecast.schemas.base import ApiModel


class FlightOffer(ApiModel):
    """One provider offer in canonical shape. Immutable once normalized."""

    model_config = ConfigDict(frozen=True)

    carrier_code: str
    flight_number: str
    airline: str
    depart_time: datetime
    arrive_time: datetime
    duration: str = ""
    stops: int = 0
    nonstop: bool = True
    price: float
    currency: str
    booking_url: Optional[str] = None
    source: str

    @property
    def dedup_key(self) -> tuple[str, str, datetime, datetime]:
        return (self.carrier_code, self.flight_number, self.depart_time, self.arrive_time)

    @property
    def display_flight_number(self) -> str:
        return f"{self.carrier_code} {self.flight_number}".strip()


class FlexDateEntry(ApiModel):
    date: dt.date
    offset: int
    min_price: float
    currency: str
    cheaper_than_base: bool
