from sqlalchemy import Column, Integer, String, DateTime, Float, UniqueConstraint
from farecast.database import Base
from farecast.utils.clock import utcnow


class SeasonalBucket(Base):
    """
    Running far-vs-near price aggregate for one (origin, destination, month).

    "Far" observations were made 30+ days before departure, "near" ones within
    7 days. Counters only grow; a bucket disappears solely through the
    staleness prune on last_updated.
    """
    __tablename__ = "seasonal_buckets"

    id = Column(Integer, primary_key=True, autoincrement=True)

    origin = Column(String(3), nullable=False)
    destination = Column(String(3), nullable=False)
    month = Column(Integer, nullable=False)  # 1-12, month of departure

    total_points = Column(Integer, nullable=False, default=0)

    far_sum = Column(Float, nullable=False, default=0.0)
    far_count = Column(Integer, nullable=False, default=0)
    near_sum = Column(Float, nullable=False, default=0.0)
    near_count = Column(Integer, nullable=False, default=0)

    last_updated = Column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        UniqueConstraint('origin', 'destination', 'month', name='uq_seasonal_bucket_route_month'),
    )

    @property
    def far_avg(self) -> float:
        return self.far_sum / self.far_count if self.far_count else 0.0

    @property
    def near_avg(self) -> float:
        return self.near_sum / self.near_count if self.near_count else 0.0

    def __repr__(self) -> str:
        return (
            f"<SeasonalBucket {self.origin}-{self.destination} m{self.month}: "
            f"far {self.far_count} near {self.near_count} total {self.total_points}>"
        )
