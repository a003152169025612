"""
Seasonal far-vs-near price model.

For every (origin, destination, month of departure) we keep running sums of
average search prices observed far from departure (30+ days out) and near it
(7 days or less). Comparing the two averages tells us whether fares on that
route historically climb or fall as departure approaches.

This is incremental aggregate statistics, not a trained model: nothing is
fitted and no weights are stored.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from farecast.config import get_settings
from farecast.models.seasonal_bucket import SeasonalBucket
from farecast.schemas.advice import Action, SeasonalSignal, Trend
from farecast.services.outcome import StoreOutcome
from farecast.utils.clock import utcnow

logger = logging.getLogger(__name__)

FAR_WINDOW_DAYS = 30
NEAR_WINDOW_DAYS = 7

MIN_WINDOW_COUNT = 2
MIN_TOTAL_POINTS = 6

FLAT_THRESHOLD = 0.05
STRONG_THRESHOLD = 0.10

REASON_INSUFFICIENT = "Not enough seasonal history for this route and month."
REASON_DEGENERATE = "Seasonal history for this route is not usable."
REASON_FLAT = "Historically, prices for this route and month stay fairly flat as departure nears."
REASON_UP_STRONG = "Historically, prices rise sharply as departure nears for this route and month."
REASON_UP = "Historically, prices rise slightly as departure nears for this route and month."
REASON_DOWN_STRONG = "Historically, prices drop noticeably as departure nears for this route and month."
REASON_DOWN = "Historically, prices drop slightly as departure nears for this route and month."


@dataclass(frozen=True)
class BucketCounts:
    """Plain snapshot of a bucket row, detached from the session."""
    total_points: int
    far_sum: float
    far_count: int
    near_sum: float
    near_count: int


def classify_window(days_until: int) -> Optional[str]:
    if days_until >= FAR_WINDOW_DAYS:
        return "far"
    if days_until <= NEAR_WINDOW_DAYS:
        return "near"
    return None


def classify_trend(counts: Optional[BucketCounts]) -> SeasonalSignal:
    """Turn bucket counters into a BOOK / WAIT / NO_SIGNAL seasonal signal."""
    if (
        counts is None
        or counts.far_count < MIN_WINDOW_COUNT
        or counts.near_count < MIN_WINDOW_COUNT
        or counts.total_points < MIN_TOTAL_POINTS
    ):
        return SeasonalSignal(
            action=Action.NO_SIGNAL,
            confidence=40,
            reason=REASON_INSUFFICIENT,
            trend=Trend.UNKNOWN,
            points_used=counts.total_points if counts else 0,
        )

    far_avg = counts.far_sum / counts.far_count
    near_avg = counts.near_sum / counts.near_count

    if not (math.isfinite(far_avg) and math.isfinite(near_avg)) or far_avg <= 0:
        return SeasonalSignal(
            action=Action.NO_SIGNAL,
            confidence=40,
            reason=REASON_DEGENERATE,
            trend=Trend.UNKNOWN,
            points_used=counts.total_points,
        )

    rel_change = (near_avg - far_avg) / far_avg
    details = dict(
        far_avg=round(far_avg, 2),
        near_avg=round(near_avg, 2),
        rel_change=round(rel_change, 4),
        points_used=counts.total_points,
    )

    if abs(rel_change) < FLAT_THRESHOLD:
        return SeasonalSignal(
            action=Action.NO_SIGNAL, confidence=45, reason=REASON_FLAT, trend=Trend.FLAT, **details
        )
    if rel_change > STRONG_THRESHOLD:
        return SeasonalSignal(
            action=Action.BOOK, confidence=75, reason=REASON_UP_STRONG, trend=Trend.UP, **details
        )
    if rel_change < -STRONG_THRESHOLD:
        return SeasonalSignal(
            action=Action.WAIT, confidence=75, reason=REASON_DOWN_STRONG, trend=Trend.DOWN, **details
        )
    if rel_change > 0:
        return SeasonalSignal(
            action=Action.BOOK, confidence=65, reason=REASON_UP, trend=Trend.UP, **details
        )
    return SeasonalSignal(
        action=Action.WAIT, confidence=65, reason=REASON_DOWN, trend=Trend.DOWN, **details
    )


class SeasonalLearner:
    def __init__(self, db: Session, freshness_days: Optional[int] = None):
        self.db = db
        self.freshness_days = freshness_days or get_settings().seasonal_freshness_days

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return pg_insert(SeasonalBucket)
        if dialect == "sqlite":
            return sqlite_insert(SeasonalBucket)
        raise ValueError(f"Unsupported dialect for bucket upsert: {dialect}")

    def record_observation(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        days_until: int,
        avg_price: float,
        now: Optional[datetime] = None,
    ) -> StoreOutcome:
        """
        Fold one search's average price into its seasonal bucket.

        The increment is a single INSERT .. ON CONFLICT DO UPDATE with
        field-wise addition so that concurrent searches on the same
        route/month never lose each other's updates.
        """
        window = classify_window(days_until)
        if window is None:
            return StoreOutcome.no_data()
        if not math.isfinite(avg_price) or avg_price <= 0:
            return StoreOutcome.no_data()

        now = now or utcnow()
        is_far = window == "far"
        table = SeasonalBucket.__table__

        try:
            stmt = self._insert().values(
                origin=origin,
                destination=destination,
                month=departure_date.month,
                total_points=1,
                far_sum=avg_price if is_far else 0.0,
                far_count=1 if is_far else 0,
                near_sum=0.0 if is_far else avg_price,
                near_count=0 if is_far else 1,
                last_updated=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["origin", "destination", "month"],
                set_={
                    "total_points": table.c.total_points + stmt.excluded.total_points,
                    "far_sum": table.c.far_sum + stmt.excluded.far_sum,
                    "far_count": table.c.far_count + stmt.excluded.far_count,
                    "near_sum": table.c.near_sum + stmt.excluded.near_sum,
                    "near_count": table.c.near_count + stmt.excluded.near_count,
                    "last_updated": stmt.excluded.last_updated,
                },
            )
            self.db.execute(stmt)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Seasonal update failed for {origin}-{destination}: {e}")
            return StoreOutcome.failed(str(e))

        logger.debug(
            f"Seasonal {window} observation {origin}-{destination} month {departure_date.month}: {avg_price:.2f}"
        )
        return StoreOutcome.ok(window)

    def get_bucket(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        now: Optional[datetime] = None,
    ) -> StoreOutcome:
        cutoff = (now or utcnow()) - timedelta(days=self.freshness_days)
        try:
            bucket = self.db.query(SeasonalBucket).filter(
                SeasonalBucket.origin == origin,
                SeasonalBucket.destination == destination,
                SeasonalBucket.month == departure_date.month,
                SeasonalBucket.last_updated >= cutoff,
            ).first()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Seasonal lookup failed for {origin}-{destination}: {e}")
            return StoreOutcome.failed(str(e))

        if bucket is None:
            return StoreOutcome.no_data()
        return StoreOutcome.ok(BucketCounts(
            total_points=bucket.total_points,
            far_sum=bucket.far_sum,
            far_count=bucket.far_count,
            near_sum=bucket.near_sum,
            near_count=bucket.near_count,
        ))

    def advise(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        now: Optional[datetime] = None,
    ) -> SeasonalSignal:
        outcome = self.get_bucket(origin, destination, departure_date, now=now)
        return classify_trend(outcome.value_or(None))

    def prune_stale(self, now: Optional[datetime] = None) -> StoreOutcome:
        """Delete buckets not updated within the freshness window."""
        cutoff = (now or utcnow()) - timedelta(days=self.freshness_days)
        try:
            deleted = self.db.query(SeasonalBucket).filter(
                SeasonalBucket.last_updated < cutoff
            ).delete(synchronize_session=False)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Seasonal prune failed: {e}")
            return StoreOutcome.failed(str(e))

        if deleted:
            logger.info(f"Pruned {deleted} stale seasonal buckets")
        return StoreOutcome.ok(deleted)
