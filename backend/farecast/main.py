from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from farecast.api import health, history, search
from farecast.scheduler import start_scheduler, stop_scheduler
from farecast.config import get_settings
from farecast.database import init_db
from farecast.services.search_service import wait_for_recordings

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting farecast")
    init_db()

    if settings.scheduler_enabled:
        try:
            start_scheduler()
            logger.info("Housekeeping scheduler started")
        except Exception as e:
            logger.error(f"Scheduler start failed: {e}")

    yield

    logger.info("Shutting down farecast")
    await wait_for_recordings()
    try:
        stop_scheduler()
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


app = FastAPI(
    title="farecast",
    description="Multi-provider flight price aggregation with book-or-wait advice",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(search.router, prefix="/api", tags=["search"])
app.include_router(history.router, prefix="/api", tags=["history"])
