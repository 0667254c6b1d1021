from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from jobboard.core.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # SQLite ignores pool sizing and needs cross-thread access under the threadpool
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using them
        "pool_size": 10,  # Connection pool size
        "max_overflow": 20,  # Allow up to 20 connections beyond pool_size
        "pool_timeout": 30,  # Seconds to wait for a free connection
    }


# Create SQLAlchemy engine
engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

# Create SessionLocal class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create Base class for models
Base = declarative_base()


def get_db():
    """
    Dependency function to get database session.
    Used in FastAPI endpoints with Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Initialize database.

    Tables are managed by Alembic ("alembic upgrade head"); this only makes
    sure every model is imported and registered on Base.metadata.
    """
    from jobboard.models import user, category, department, location, level, job  # noqa: F401
