from sqlalchemy import Column, Integer, String, Date, DateTime, Float, Index
from farecast.database import Base
from farecast.utils.clock import utcnow


class PriceSnapshot(Base):
    """
    Summary of one completed, non-empty search.

    Rows are append-only: written once per search and only ever removed by
    the retention prune (by search_date).
    """
    __tablename__ = "price_snapshots"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)

    origin = Column(String(3), nullable=False)
    destination = Column(String(3), nullable=False)
    departure_date = Column(Date, nullable=False)

    search_date = Column(Date, nullable=False, index=True)
    days_until_departure = Column(Integer, nullable=False)

    min_price = Column(Float, nullable=False)
    avg_price = Column(Float, nullable=False)
    max_price = Column(Float, nullable=False)
    currency = Column(String(3), nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('ix_price_snapshot_lookup', 'origin', 'destination', 'departure_date'),
    )

    def __repr__(self) -> str:
        return (
            f"<PriceSnapshot {self.origin}-{self.destination} {self.departure_date}: "
            f"{self.min_price}/{self.avg_price}/{self.max_price} {self.currency}>"
        )
