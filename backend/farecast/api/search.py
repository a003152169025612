from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from farecast.database import get_db, get_session_factory
from farecast.schemas.search import SearchRequest, SearchResponse
from farecast.services.flight_price_fetcher import FlightPriceFetcher
from farecast.services.search_service import SearchService

logger = logging.getLogger(__name__)

router = APIRouter()

_fetcher: Optional[FlightPriceFetcher] = None


def get_fetcher() -> FlightPriceFetcher:
    """Shared provider chain so adapter state (e.g. OAuth tokens) survives across requests."""
    global _fetcher
    if _fetcher is None:
        _fetcher = FlightPriceFetcher()
    return _fetcher


@router.post("/flights", response_model=SearchResponse)
async def search_flights(
    request: SearchRequest,
    db: Session = Depends(get_db),
    fetcher: FlightPriceFetcher = Depends(get_fetcher),
    session_factory=Depends(get_session_factory),
):
    try:
        return await SearchService(db, fetcher=fetcher, session_factory=session_factory).search(request)
    except Exception as e:
        logger.error(f"Flight search error: {e}")
        raise HTTPException(
            status_code=500,
            detail="Unable to load flights right now. Please try again in a moment.",
        )
