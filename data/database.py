"""
Database engine and session handling for the notes store.

One ``DatabaseManager`` is kept per database URL; the first request for a URL
creates its tables so every CLI command can open a session straight away.
"""
import logging
from contextlib import contextmanager
from typing import Dict, Generator, List, Optional

from sqlalchemy import create_engine, inspect
from sqlalchemy.orm import sessionmaker, Session

from config.settings import settings
from .db_models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Engine, session factory and schema operations for one database."""

    def __init__(self, database_url: Optional[str] = None, echo: Optional[bool] = None):
        """
        Args:
            database_url: SQLAlchemy URL; defaults to the DATABASE_URL setting
            echo: Log SQL statements; defaults to the DATABASE_ECHO setting
        """
        self.database_url = database_url or settings.database_url
        if echo is None:
            echo = settings.database_echo

        # Blob stores are shared with worker threads during OCR
        connect_args = {}
        if self.database_url.startswith('sqlite'):
            connect_args['check_same_thread'] = False

        self.engine = create_engine(self.database_url, connect_args=connect_args, echo=echo)
        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

    def create_tables(self):
        """Create the document, page and figure tables if missing."""
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables ready at: %s", self.database_url)

    def drop_tables(self):
        """Drop all tables, destroying stored notes and figures."""
        Base.metadata.drop_all(bind=self.engine)
        logger.warning("Database tables dropped from: %s", self.database_url)

    def table_names(self) -> List[str]:
        """Names of the tables currently present in the database."""
        return sorted(inspect(self.engine).get_table_names())

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Session that commits on success and rolls back on exception.

        Usage:
            with db.session() as session:
                storage = DocumentStorageService(session)
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


_databases: Dict[str, DatabaseManager] = {}


def get_database(database_url: Optional[str] = None) -> DatabaseManager:
    """
    Return the manager for ``database_url``, creating it and its tables on first use.

    Args:
        database_url: SQLAlchemy URL; defaults to the DATABASE_URL setting
    """
    url = database_url or settings.database_url
    db = _databases.get(url)
    if db is None:
        db = DatabaseManager(url)
        db.create_tables()
        _databases[url] = db
    return db


@contextmanager
def session_scope(database_url: Optional[str] = None) -> Generator[Session, None, None]:
    """
    Transactional session on the configured database.

    Usage:
        with session_scope() as session:
            doc = session.query(Document).first()
    """
    with get_database(database_url).session() as session:
        yield session
