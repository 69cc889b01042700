"""Database Session Management."""
import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from promptvault.settings import settings

logger = logging.getLogger(__name__)

_connect_args = {}
if settings.database_url.startswith("sqlite"):
    # Route handlers run in FastAPI's threadpool
    _connect_args["check_same_thread"] = False

engine = create_engine(settings.database_url, pool_pre_ping=True, connect_args=_connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
logger.info("Initialized Database Engine")


def init_db() -> None:
    """Create tables that do not exist yet."""
    from promptvault.adapters.postgres.models import Base
    Base.metadata.create_all(bind=engine)


