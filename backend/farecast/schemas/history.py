from datetime import date

from pydantic import ConfigDict

from farecast.schemas.base import ApiModel


class HistoryPoint(ApiModel):
    days_until_departure: int
    avg_price: float
    min_price: float
    max_price: float
    search_date: date

    model_config = ConfigDict(from_attributes=True)


class RouteCount(ApiModel):
    origin: str
    destination: str
    count: int


class HistoryStats(ApiModel):
    total_history_points: int
    seasonal_buckets: int
    top_routes: list[RouteCount]
