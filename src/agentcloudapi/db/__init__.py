import logging
from typing import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


def engine_options(url: str) -> dict:
    """Engine keyword arguments suited to the database backend."""
    if not url.startswith("sqlite"):
        return {"pool_size": 5, "max_overflow": 10, "pool_pre_ping": True, "pool_recycle": 3600}
    # FastAPI runs sync dependencies in a threadpool
    options = {"connect_args": {"check_same_thread": False}}
    if url in IN_MEMORY_SQLITE:
        options["poolclass"] = StaticPool
    return options


class DatabaseManager:
    """Lazily builds the engine and session factory from settings."""

    def __init__(self, database_url: str | None = None):
        self.database_url = database_url
        self._engine = None
        self._session_factory = None

    @property
    def url(self) -> str:
        return self.database_url or settings.sqlalchemy_url

    def ping(self, engine) -> None:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Cannot reach database: {e}")
            raise
        logger.info(f"Connected to {engine.url.render_as_string(hide_password=True)}")

    def get_engine(self):
        if self._engine is None:
            engine = create_engine(self.url, **engine_options(self.url))
            self.ping(engine)
            self._engine = engine
        return self._engine

    def get_session_local(self):
        """Session factory bound to the engine."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.get_engine(), autoflush=False, expire_on_commit=False
            )
        return self._session_factory


db_manager = DatabaseManager()


def get_db() -> Generator[Session, None, None]:
    """Request scoped session, rolled back when the handler raises."""
    db = db_manager.get_session_local()()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(manager: DatabaseManager = db_manager):
    """Create every table on the metadata, for setups without alembic."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=manager.get_engine())
    logger.info("Created database tables")
