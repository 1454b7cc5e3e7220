"""SQLAlchemy database models and schema management for Kiro Notes."""
import datetime
import logging
from pathlib import Path
from typing import Optional

from sqlalchemy import Column, Index, Integer, Text, create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

from kiro_notes.config import config
from kiro_notes.exceptions import ErrorCode, StorageError
from kiro_notes.models.schema import format_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

# Create base class for SQLAlchemy models
Base = declarative_base()


def _unicode_lower(value: Optional[str]) -> Optional[str]:
    return value.lower() if value is not None else None


def _register_sql_functions(dbapi_connection, connection_record=None) -> None:
    # SQLite's built-in lower() only folds ASCII
    dbapi_connection.create_function(
        "unicode_lower", 1, _unicode_lower, deterministic=True
    )


def register_sql_functions(engine: Engine) -> None:
    """Make the custom SQL functions search relies on available on ``engine``.

    init_db() does this for the engines it builds. Engines created elsewhere
    get a connect listener for new connections, and the function is also
    installed on the connection the pool hands out now.
    """
    if not event.contains(engine, "connect", _register_sql_functions):
        event.listen(engine, "connect", _register_sql_functions)
    with engine.connect() as conn:
        _register_sql_functions(conn.connection.dbapi_connection)


class UTCTimestamp(TypeDecorator):
    """Aware datetime stored as fixed-width ISO-8601 text in UTC."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or isinstance(value, str):
            return value
        return format_timestamp(value)

    def process_result_value(self, value, dialect) -> Optional[datetime.datetime]:
        if value is None:
            return None
        return parse_timestamp(value)


class DBNote(Base):
    """Database model for a note."""
    __tablename__ = "notes"
    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    body = Column(Text, nullable=False)
    created_at = Column(UTCTimestamp, nullable=False)
    updated_at = Column(UTCTimestamp, nullable=False)
    import_hash = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_updated", updated_at.desc()),
        Index("idx_import_hash", import_hash),
        # AUTOINCREMENT keeps deleted ids from ever being handed out again
        {"sqlite_autoincrement": True},
    )

    def __repr__(self) -> str:
        """Return string representation of note."""
        return f"<Note(id={self.id}, title='{self.title}')>"


def init_db(database_path: Optional[Path] = None, in_memory: bool = False) -> Engine:
    """Open the database and make sure the schema is current.

    The engine holds exactly one SQLite connection (StaticPool), shared by
    every caller of the store and guarded by the store's lock, so
    ``check_same_thread`` is disabled.

    Steps:
    - WAL journal and NORMAL synchronous mode on connect
    - create the notes table when absent
    - add the import_hash column to tables created before it existed
    - create the updated_at and import_hash indexes when absent

    Args:
        database_path: SQLite file to open. Defaults to config.database_path.
        in_memory: Use a private in-memory database instead of a file.

    Returns:
        The initialized engine.

    Raises:
        StorageError: If the database cannot be opened or the schema
            statements fail.
    """
    if in_memory:
        url = "sqlite://"
    elif database_path is not None:
        path = Path(database_path).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(
                "Failed to create database directory",
                operation="init_db",
                path=str(path.parent),
                code=ErrorCode.STORAGE_CONNECTION_FAILED,
                original_error=e,
            ) from e
        url = f"sqlite:///{path}"
    else:
        url = config.get_db_url()

    engine = create_engine(
        url,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()
        _register_sql_functions(dbapi_connection)

    try:
        Base.metadata.create_all(engine)
        _migrate_add_import_hash_column(engine)
        # create_all skips indexes of tables that already existed
        for index in DBNote.__table__.indexes:
            index.create(engine, checkfirst=True)
    except SQLAlchemyError as e:
        engine.dispose()
        raise StorageError(
            "Failed to initialize database schema",
            operation="init_db",
            path=None if in_memory else url.replace("sqlite:///", ""),
            code=ErrorCode.STORAGE_CONNECTION_FAILED,
            original_error=e,
        ) from e

    logger.info(f"Database ready: {url}")
    return engine


def _migrate_add_import_hash_column(engine: Engine) -> None:
    """Migration: Add import_hash column to databases created before imports.

    SQLite doesn't support IF NOT EXISTS for ADD COLUMN, so we check
    the schema first. This is idempotent and safe to run multiple times.
    """
    inspector = inspect(engine)
    columns = [col['name'] for col in inspector.get_columns('notes')]

    if 'import_hash' not in columns:
        logger.info("Migrating notes table: adding import_hash column")
        with engine.connect() as conn:
            conn.execute(text("ALTER TABLE notes ADD COLUMN import_hash TEXT"))
            conn.commit()


def get_session_factory(engine: Engine) -> sessionmaker:
    """Get a session factory for the database."""
    return sessionmaker(bind=engine, expire_on_commit=False)
