from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from farecast.config import get_settings
import logging

logger = logging.getLogger(__name__)
settings = get_settings()

db_url = settings.database_url

if db_url.startswith("sqlite"):
    # Bounded wait on a locked database instead of blocking indefinitely
    connect_args = {
        "check_same_thread": False,
        "timeout": settings.storage_timeout_seconds,
    }
else:
    connect_args = {"connect_timeout": int(settings.storage_timeout_seconds)}

engine = create_engine(db_url, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_session_factory() -> sessionmaker:
    """Factory for work that outlives the request session (background writes)."""
    return SessionLocal


def init_db() -> None:
    """Create the snapshot and bucket tables if they do not exist yet."""
    import farecast.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    logger.info(f"Database ready at {engine.url.render_as_string(hide_password=True)}")
