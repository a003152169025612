"""
Durable log of per-search price snapshots.

Writes are append-only and pruned by age. Reads feed the trend chart and the
flexible-date scanner, and never raise: a storage problem shows up as a
FAILED outcome and an empty list for the caller.
"""
import logging
from datetime import date, timedelta
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from farecast.config import get_settings
from farecast.models.price_snapshot import PriceSnapshot
from farecast.models.seasonal_bucket import SeasonalBucket
from farecast.schemas.history import HistoryPoint, HistoryStats, RouteCount
from farecast.services.outcome import StoreOutcome
from farecast.services.price_stats import PriceStats
from farecast.utils.clock import utc_today, utcnow

logger = logging.getLogger(__name__)


class HistoryStore:
    def __init__(self, db: Session, retention_days: Optional[int] = None):
        self.db = db
        self.retention_days = retention_days or get_settings().history_retention_days

    def record_snapshot(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        currency: str,
        stats: PriceStats,
        days_until: int,
        search_date: Optional[date] = None,
    ) -> StoreOutcome:
        """Prune expired rows, then append one snapshot for a completed search."""
        search_date = search_date or utc_today()
        self.prune_expired(today=search_date)

        snapshot = PriceSnapshot(
            origin=origin,
            destination=destination,
            departure_date=departure_date,
            search_date=search_date,
            days_until_departure=days_until,
            min_price=stats.min_price,
            avg_price=stats.avg_price,
            max_price=stats.max_price,
            currency=currency,
            created_at=utcnow(),
        )
        try:
            self.db.add(snapshot)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"History write failed for {origin}-{destination} {departure_date}: {e}")
            return StoreOutcome.failed(str(e))

        return StoreOutcome.ok(snapshot.id)

    def prune_expired(self, today: Optional[date] = None) -> StoreOutcome:
        cutoff = (today or utc_today()) - timedelta(days=self.retention_days)
        try:
            deleted = self.db.query(PriceSnapshot).filter(
                PriceSnapshot.search_date < cutoff
            ).delete(synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"History prune failed: {e}")
            return StoreOutcome.failed(str(e))

        if deleted:
            logger.info(f"Pruned {deleted} price snapshots older than {cutoff}")
        return StoreOutcome.ok(deleted)

    def fetch_history(self, origin: str, destination: str, departure_date: date) -> StoreOutcome:
        """Snapshots for one exact route/date, ordered by days-until-departure."""
        try:
            rows = self.db.query(PriceSnapshot).filter(
                PriceSnapshot.origin == origin,
                PriceSnapshot.destination == destination,
                PriceSnapshot.departure_date == departure_date,
            ).order_by(
                PriceSnapshot.days_until_departure.asc(),
                PriceSnapshot.id.asc(),
            ).all()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"History read failed for {origin}-{destination} {departure_date}: {e}")
            return StoreOutcome.failed(str(e), value=[])

        points = [HistoryPoint.model_validate(row) for row in rows]
        if not points:
            return StoreOutcome.no_data([])
        return StoreOutcome.ok(points)

    def get_history(self, origin: str, destination: str, departure_date: date) -> list[HistoryPoint]:
        return self.fetch_history(origin, destination, departure_date).value or []

    def min_price_for_date(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        currency: str,
    ) -> StoreOutcome:
        """Lowest recorded price for an exact route/date in *currency*."""
        try:
            value = self.db.query(func.min(PriceSnapshot.min_price)).filter(
                PriceSnapshot.origin == origin,
                PriceSnapshot.destination == destination,
                PriceSnapshot.departure_date == departure_date,
                PriceSnapshot.currency == currency,
            ).scalar()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"History min-price lookup failed for {origin}-{destination} {departure_date}: {e}")
            return StoreOutcome.failed(str(e))

        if value is None:
            return StoreOutcome.no_data()
        return StoreOutcome.ok(float(value))

    def get_stats(self, top: int = 5) -> HistoryStats:
        try:
            total = self.db.query(func.count(PriceSnapshot.id)).scalar() or 0
            buckets = self.db.query(func.count(SeasonalBucket.id)).scalar() or 0
            count = func.count(PriceSnapshot.id).label("count")
            routes = self.db.query(
                PriceSnapshot.origin, PriceSnapshot.destination, count
            ).group_by(
                PriceSnapshot.origin, PriceSnapshot.destination
            ).order_by(count.desc()).limit(top).all()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"History stats failed: {e}")
            return HistoryStats(total_history_points=0, seasonal_buckets=0, top_routes=[])

        return HistoryStats(
            total_history_points=total,
            seasonal_buckets=buckets,
            top_routes=[
                RouteCount(origin=r.origin, destination=r.destination, count=r.count)
                for r in routes
            ],
        )
