import logging
from contextlib import contextmanager
from typing import Generator, Iterator

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# Create Base class for models
Base = declarative_base()


class Database:
    """
    Owns the SQLAlchemy engine and session factory.

    Built once by the application entry point and handed to request handlers
    through ``get_db``; nothing in the codebase holds a module-level engine.
    """

    def __init__(self, database_url: str, pool_size: int = 10, max_overflow: int = 20, echo: bool = False):
        self.database_url = database_url

        if database_url.startswith("sqlite"):
            # In-memory SQLite must share one connection across threads
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs = {
                "pool_size": pool_size,
                "max_overflow": max_overflow,
                "pool_pre_ping": True,
                "pool_recycle": 300,
            }

        try:
            self.engine = create_engine(database_url, echo=echo, **engine_kwargs)
            logger.info("✅ SQLAlchemy engine initialized")
        except Exception as e:
            logger.error(f"❌ Failed to initialize database engine: {str(e)}")
            raise

        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def session(self) -> Session:
        return self.SessionLocal()

    def test_connection(self) -> bool:
        """
        Test database connectivity

        Returns:
            bool: True if connection successful, False otherwise
        """
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                logger.info("✅ Database connection test successful")
                return True
        except SQLAlchemyError as e:
            logger.error(f"❌ Database connection test failed: {str(e)}")
            return False

    def init_db(self):
        """
        Initialize database tables (if needed)
        This will create all tables defined in your models
        """
        try:
            # Import all models here to ensure they are registered with Base
            import models  # noqa: F401

            Base.metadata.create_all(bind=self.engine)
            logger.info("✅ Database tables initialized")
        except Exception as e:
            logger.error(f"❌ Failed to initialize database tables: {str(e)}")
            raise

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Database dependency for FastAPI dependency injection.
    Creates a new session from the application's Database for each request
    and closes it when done.

    Yields:
        Session: SQLAlchemy database session
    """
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    except SQLAlchemyError as e:
        logger.error(f"Database session error: {str(e)}")
        db.rollback()
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """
    All-or-nothing unit of work.

    Commits when the block exits cleanly; rolls back every write made inside
    the block if anything raises, then re-raises.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
