import logging
from typing import Optional

from sqlalchemy.orm import Session

from farecast.database import SessionLocal
from farecast.services.history_store import HistoryStore
from farecast.services.seasonal_learner import SeasonalLearner

logger = logging.getLogger(__name__)


def run_housekeeping(db: Optional[Session] = None) -> dict:
    """
    Prune expired snapshots and stale seasonal buckets.

    Uses its own session unless one is given, so it can run in a worker
    thread alongside live searches.
    """
    own_session = db is None
    db = db or SessionLocal()
    try:
        snapshots = HistoryStore(db).prune_expired()
        buckets = SeasonalLearner(db).prune_stale()
    finally:
        if own_session:
            db.close()

    summary = {
        "snapshots_deleted": snapshots.value_or(0),
        "buckets_deleted": buckets.value_or(0),
        "failed": [
            name for name, outcome in (("snapshots", snapshots), ("buckets", buckets))
            if outcome.is_failure
        ],
    }
    logger.info(
        f"Housekeeping: {summary['snapshots_deleted']} snapshots, "
        f"{summary['buckets_deleted']} buckets removed"
    )
    return summary
