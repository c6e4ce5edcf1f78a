from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from .settings import settings


def make_engine(db_url):
    kwargs = {"future": True, "pool_pre_ping": True}
    if db_url.startswith("sqlite"):
        # Poller threads and request threads share the same file
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(db_url, **kwargs)


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
Base = declarative_base()


def init_db(bind=None):
    """Create all tables that do not exist yet."""
    from . import models  # noqa: F401  (registers the mappers)
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
