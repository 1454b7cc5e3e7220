"""Repository for note storage and retrieval."""

import datetime
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kiro_notes.exceptions import (
    ErrorCode,
    NoteNotFoundError,
    StorageError,
    ValidationError,
)
from kiro_notes.models.db_models import (
    DBNote,
    get_session_factory,
    init_db,
    register_sql_functions,
)
from kiro_notes.models.schema import Note, ensure_timezone_aware, utc_now

logger = logging.getLogger(__name__)

# Ids per IN (...) clause; stays well under SQLite's bound-variable limit
_IN_CLAUSE_CHUNK = 500

SEED_BODY_TEMPLATE = (
    "This is sample note number {number}.\n\n"
    "Created for testing Kiro.\n"
    "Contains keywords like alpha beta gamma delta.\n\n"
    "Use :help for commands."
)


def _chunked(ids: Sequence[int], size: int = _IN_CLAUSE_CHUNK) -> Iterator[List[int]]:
    for start in range(0, len(ids), size):
        yield list(ids[start:start + size])


class NoteRepository:
    """Repository for note storage and retrieval.

    Every public method runs in its own session and commits at most once,
    so each call is atomic at the storage-engine level. The repository does
    no locking of its own; NoteStore serializes access.
    """

    def __init__(
        self,
        database_path: Optional[Path] = None,
        in_memory_db: bool = False,
        engine: Optional[Any] = None,
    ):
        """Initialize the repository.

        Args:
            database_path: Path to the SQLite database file.
                          Ignored when in_memory_db=True or engine is provided.
            in_memory_db: If True, use a private in-memory SQLite database.
                         Ignored when engine is provided.
            engine: Pre-configured SQLAlchemy engine. When provided, the
                    repository uses it directly; the SQL functions search
                    needs are registered on it, while schema creation stays
                    the caller's job (init_db() does both).
        """
        if engine is not None:
            self.engine = engine
            register_sql_functions(engine)
        else:
            self.engine = init_db(database_path, in_memory=in_memory_db)
        self.session_factory = get_session_factory(self.engine)
        logger.info(f"NoteRepository initialized: db_url={self.engine.url}")

    @contextmanager
    def session_scope(
        self, operation: str, code: ErrorCode = ErrorCode.STORAGE_READ_FAILED
    ) -> Iterator[Session]:
        """Open a session, translating engine failures into StorageError.

        Leaving the block without commit() rolls the session back.
        """
        try:
            with self.session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database operation '{operation}' failed: {e}")
            raise StorageError(
                f"Database operation failed: {operation}",
                operation=operation,
                code=code,
                original_error=e,
            ) from e

    @staticmethod
    def _db_note_to_model(db_note: DBNote) -> Note:
        """Convert a database row into a detached Note copy."""
        return Note(
            id=db_note.id,
            title=db_note.title,
            body=db_note.body,
            created_at=db_note.created_at,
            updated_at=db_note.updated_at,
            import_hash=db_note.import_hash,
        )

    def create(self, title: str, body: str) -> int:
        """Insert a new note and return its identifier."""
        now = utc_now()
        db_note = DBNote(title=title, body=body, created_at=now, updated_at=now)
        with self.session_scope("create", ErrorCode.STORAGE_WRITE_FAILED) as session:
            session.add(db_note)
            session.commit()
            note_id = db_note.id
        logger.debug(f"Created note {note_id}")
        return note_id

    def get(self, note_id: int) -> Optional[Note]:
        """Get a note by ID.

        Returns:
            Note object if found, None otherwise
        """
        with self.session_scope("get") as session:
            db_note = session.get(DBNote, note_id)
            if db_note is None:
                return None
            return self._db_note_to_model(db_note)

    def get_many(self, ids: Sequence[int]) -> List[Note]:
        """Get several notes, most recently updated first.

        Identifiers that do not exist are skipped; duplicates collapse.
        """
        if not ids:
            return []

        unique_ids = sorted(set(ids))
        notes: List[Note] = []
        with self.session_scope("get_many") as session:
            for chunk in _chunked(unique_ids):
                query = (
                    select(DBNote)
                    .where(DBNote.id.in_(chunk))
                    .order_by(DBNote.updated_at.desc())
                )
                notes.extend(
                    self._db_note_to_model(db_note)
                    for db_note in session.scalars(query)
                )

        if len(unique_ids) > _IN_CLAUSE_CHUNK:
            notes.sort(key=lambda n: n.updated_at, reverse=True)
        return notes

    def update(self, note_id: int, body: str) -> None:
        """Replace a note's body and refresh updated_at.

        Raises:
            NoteNotFoundError: If no note has this ID.
        """
        self._update_fields("update", note_id, body=body)

    def update_title_and_body(self, note_id: int, title: str, body: str) -> None:
        """Replace a note's title and body and refresh updated_at.

        Raises:
            NoteNotFoundError: If no note has this ID.
        """
        self._update_fields("update_title_and_body", note_id, title=title, body=body)

    def _update_fields(self, operation: str, note_id: int, **values: str) -> None:
        stmt = (
            update(DBNote)
            .where(DBNote.id == note_id)
            .values(updated_at=utc_now(), **values)
            .execution_options(synchronize_session=False)
        )
        with self.session_scope(operation, ErrorCode.STORAGE_WRITE_FAILED) as session:
            result = session.execute(stmt)
            if result.rowcount == 0:
                raise NoteNotFoundError(note_id)
            session.commit()
        logger.debug(f"Updated note {note_id} ({', '.join(values)})")

    def delete(self, note_id: int) -> None:
        """Delete a single note.

        Raises:
            NoteNotFoundError: If no note has this ID.
        """
        with self.session_scope("delete", ErrorCode.STORAGE_DELETE_FAILED) as session:
            result = session.execute(delete(DBNote).where(DBNote.id == note_id))
            if result.rowcount == 0:
                raise NoteNotFoundError(note_id)
            session.commit()
        logger.info(f"Deleted note {note_id}")

    def delete_many(self, ids: Sequence[int]) -> int:
        """Delete every listed note in one transaction.

        Unknown identifiers are ignored.

        Returns:
            Number of notes actually removed.
        """
        if not ids:
            return 0

        unique_ids = sorted(set(ids))
        deleted = 0
        with self.session_scope("delete_many", ErrorCode.STORAGE_DELETE_FAILED) as session:
            for chunk in _chunked(unique_ids):
                result = session.execute(delete(DBNote).where(DBNote.id.in_(chunk)))
                deleted += result.rowcount
            session.commit()

        logger.info(f"Bulk deleted {deleted} of {len(unique_ids)} requested notes")
        return deleted

    def count(self) -> int:
        """Get total count of notes in the repository."""
        with self.session_scope("count") as session:
            return session.scalar(select(func.count(DBNote.id))) or 0

    def seed(self, count: int) -> None:
        """Insert ``count`` sample notes for demos and manual testing.

        Raises:
            ValidationError: If count is negative.
        """
        if count < 0:
            raise ValidationError(
                "Seed count cannot be negative", field="count", value=count
            )
        for i in range(1, count + 1):
            self.create(f"Sample note {i}", SEED_BODY_TEMPLATE.format(number=i))
        logger.info(f"Seeded {count} sample notes")

    # Import support

    def _exists(self, operation: str, *criteria: Any) -> bool:
        with self.session_scope(operation) as session:
            query = select(DBNote.id).where(*criteria).limit(1)
            return session.scalar(query) is not None

    def hash_exists(self, import_hash: str) -> bool:
        """Whether any note was imported with this fingerprint."""
        return self._exists("hash_exists", DBNote.import_hash == import_hash)

    def body_exists(self, body: str) -> bool:
        """Whether any note, imported or authored, has exactly this body."""
        return self._exists("body_exists", DBNote.body == body)

    def title_prefix_exists(self, title: str, prefix: str) -> bool:
        """Whether a note with this exact title has a body starting with ``prefix``."""
        return self._exists(
            "title_prefix_exists",
            DBNote.title == title,
            func.substr(DBNote.body, 1, len(prefix)) == prefix,
        )

    def insert_imported(
        self,
        title: str,
        body: str,
        created_at: datetime.datetime,
        import_hash: str,
    ) -> int:
        """Insert a note that came from a file, keeping its provenance.

        A ``created_at`` later than now (future file mtimes) is clamped to now,
        so ``updated_at >= created_at`` holds for imported notes too.
        """
        now = utc_now()
        db_note = DBNote(
            title=title,
            body=body,
            created_at=min(ensure_timezone_aware(created_at), now),
            updated_at=now,
            import_hash=import_hash,
        )
        with self.session_scope("insert_imported", ErrorCode.STORAGE_WRITE_FAILED) as session:
            session.add(db_note)
            session.commit()
            note_id = db_note.id
        return note_id
