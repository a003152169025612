# SQLAlchemy models
from farecast.models.price_snapshot import PriceSnapshot
from farecast.models.seasonal_bucket import SeasonalBucket

__all__ = [
    "PriceSnapshot",
    "SeasonalBucket",
]
