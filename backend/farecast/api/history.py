from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date

from farecast.database import get_db
from farecast.schemas.history import HistoryStats
from farecast.services.history_store import HistoryStore

router = APIRouter()


@router.get("/history")
async def get_history(
    origin: str = Query(...),
    destination: str = Query(...),
    depart_date: date = Query(..., alias="departDate"),
    db: Session = Depends(get_db),
):
    points = HistoryStore(db).get_history(origin.upper(), destination.upper(), depart_date)
    return {"history": [p.model_dump(by_alias=True, mode="json") for p in points]}


@router.get("/stats", response_model=HistoryStats)
async def get_stats(db: Session = Depends(get_db)):
    return HistoryStore(db).get_stats()
