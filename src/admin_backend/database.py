import logging
from typing import Generator
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from admin_backend.api.exceptions import ServiceUnavailableException
from admin_backend.settings import BackendSettings

logger = logging.getLogger(__name__)


def build_engine(settings: BackendSettings) -> Engine:
    url = settings.DATABASE_URL

    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return create_engine(url, **options)

    options = {
        "pool_pre_ping": True,
        "pool_size": settings.DATABASE_POOL_SIZE,
        "max_overflow": settings.DATABASE_MAX_OVERFLOW,
        "pool_timeout": settings.DATABASE_POOL_TIMEOUT,
        "pool_recycle": 300
    }

    if url.startswith("postgresql"):
        # server-side deadline for every statement, in milliseconds
        options["connect_args"] = {"options": f"-c statement_timeout={settings.DATABASE_POOL_TIMEOUT * 1000}"}

    return create_engine(url, **options)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:

    db = request.app.state.app.session_factory()

    try:
        yield db
    except OperationalError as e:
        logger.error(f"Database operation failed: {e}")
        db.rollback()
        raise ServiceUnavailableException("Database unavailable") from e
    finally:
        db.close()


def init_schema(engine: Engine):
    """Create every table that does not exist yet."""
    from admin_backend.model import Base
    Base.metadata.create_all(bind=engine)
