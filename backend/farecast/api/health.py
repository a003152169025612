from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text

from farecast.api.search import get_fetcher
from farecast.database import get_db
from farecast.services.flight_price_fetcher import FlightPriceFetcher

router = APIRouter()


@router.get("/health")
async def health_check(
    db: Session = Depends(get_db),
    fetcher: FlightPriceFetcher = Depends(get_fetcher),
):
    try:
        db.execute(text("SELECT 1"))
        db_status = "healthy"
    except Exception as e:
        db_status = f"unhealthy: {str(e)}"

    return {
        "status": "ok" if db_status == "healthy" else "degraded",
        "database": db_status,
        "providers": fetcher.get_status(),
    }
