"""Database connection utilities."""

from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
import structlog

from ..config.config import settings
from .models import Base

logger = structlog.get_logger()


class Database:
    """Database connection manager."""

    def __init__(self, url: Optional[str] = None):
        self.url = url
        self.engine = None
        self.SessionLocal = None

    @property
    def is_initialized(self) -> bool:
        return self.SessionLocal is not None

    def initialize(self, url: Optional[str] = None):
        """Initialize database connection."""
        self.url = url or self.url or settings.database_url
        logger.info("Initializing database connection", url=self.url)

        engine_opts = {"echo": False}  # Set echo=True for SQL debugging
        if self.url.startswith("sqlite"):
            # One shared connection so in-memory databases survive across threads
            engine_opts["connect_args"] = {"check_same_thread": False}
            engine_opts["poolclass"] = StaticPool

        self.engine = create_engine(self.url, **engine_opts)

        # Create session factory
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )

        # Create tables
        self.create_tables()

        logger.info("Database connection initialized")

    def create_tables(self):
        """Create all tables."""
        try:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Database tables created")
        except Exception as e:
            logger.error("Failed to create tables", error=str(e))
            raise

    def ping(self) -> bool:
        """Run a trivial query; raises if the database is unreachable."""
        with self.get_session() as session:
            session.execute(text("SELECT 1"))
        return True

    def dispose(self):
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self.SessionLocal = None

    @contextmanager
    def get_session(self):
        """Get database session with automatic cleanup."""
        if not self.SessionLocal:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


# Global database instance
db = Database()
