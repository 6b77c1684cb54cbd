from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from app.core.config import settings


def _connect_args(url: str) -> dict:
    # SQLite connections are used across threads by the TestClient and scheduler
    if url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


# Create database engine - manages connection pool
# pool_pre_ping drops connections MySQL has closed on its side
engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args(settings.DATABASE_URL),
    pool_pre_ping=True,
)

# Create session factory - each request gets a new session
# autocommit=False: Changes require explicit commit
# autoflush=False: Don't auto-flush before queries
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all database models
Base = declarative_base()


def get_db():
    """
    Dependency for getting database session.

    The session is closed after the request completes, even if the handler raised.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
