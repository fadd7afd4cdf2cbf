from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from config import DATABASE_URL

Base = declarative_base()


def make_engine(url: str = DATABASE_URL):
    if url.startswith("postgresql"):
        # Production: PostgreSQL with connection pooling
        return create_engine(
            url,
            pool_size=20,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800
        )
    # Development: SQLite
    return create_engine(url, connect_args={"check_same_thread": False})


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


# --- ENGINE & SESSION ---
engine = make_engine()
SessionLocal = make_session_factory(engine)


def init_db(bind=None):
    """Create all tables on the given engine (defaults to the configured one)."""
    import models_orm  # noqa: F401  registers the tables on Base.metadata
    Base.metadata.create_all(bind=bind or engine)


# --- DEPENDENCIES ---
def get_session_factory():
    """
    Dependency for FastAPI routes and services.
    Returns the session factory every service is constructed with.
    Tests override this to point at a throw-away database.
    """
    return SessionLocal


def get_db(session_factory=Depends(get_session_factory)):
    """
    Yields a database session from the current session factory and closes it
    after the request.
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
