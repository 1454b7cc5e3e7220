"""Process-wide note store: one connection, one lock, every operation.

All repository, search, import and export calls go through ``NoteStore``,
which runs each of them while holding a single ``threading.Lock``. Callers on
different threads therefore execute strictly one at a time.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from kiro_notes.config import config
from kiro_notes.exceptions import StoreLockError
from kiro_notes.models.schema import ImportResult, Note, SearchResult
from kiro_notes.observability import traced
from kiro_notes.services.export_service import ExportService
from kiro_notes.services.import_service import ImportService
from kiro_notes.services.search_service import SearchService
from kiro_notes.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class NoteStore:
    """Serialized facade over the repository and the note services."""

    def __init__(
        self,
        database_path: Optional[Path] = None,
        in_memory_db: bool = False,
        engine: Optional[Any] = None,
        lock_timeout: Optional[float] = None,
    ):
        """Open the store; the schema is ready when this returns.

        Args:
            database_path: SQLite file. Defaults to config.database_path.
            in_memory_db: Use a private in-memory database (tests, demos).
            engine: Pre-configured engine from init_db().
            lock_timeout: Seconds to wait for the store lock, -1 to wait
                forever. Defaults to config.lock_timeout.

        Raises:
            StorageError: If the database cannot be opened or migrated.
        """
        self.repository = NoteRepository(
            database_path=database_path, in_memory_db=in_memory_db, engine=engine
        )
        self.search_service = SearchService(self.repository)
        self.import_service = ImportService(self.repository)
        self.export_service = ExportService(self.repository)
        self._lock = threading.Lock()
        self._lock_timeout = (
            config.lock_timeout if lock_timeout is None else lock_timeout
        )

    @contextmanager
    def _locked(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(timeout=self._lock_timeout):
            logger.error(
                f"Could not acquire store lock for {operation} "
                f"within {self._lock_timeout}s"
            )
            raise StoreLockError(operation, self._lock_timeout)
        try:
            yield
        finally:
            self._lock.release()

    @traced("search")
    def search(self, query: str, limit: Optional[int] = None) -> List[SearchResult]:
        if limit is None:
            limit = config.search_limit
        with self._locked("search"):
            return self.search_service.search(query, limit)

    @traced("get")
    def get(self, note_id: int) -> Optional[Note]:
        with self._locked("get"):
            return self.repository.get(note_id)

    @traced("get_many")
    def get_many(self, ids: Sequence[int]) -> List[Note]:
        with self._locked("get_many"):
            return self.repository.get_many(ids)

    @traced("create")
    def create(self, title: str, body: str) -> int:
        with self._locked("create"):
            return self.repository.create(title, body)

    @traced("update")
    def update(self, note_id: int, body: str) -> None:
        with self._locked("update"):
            self.repository.update(note_id, body)

    @traced("update_title_and_body")
    def update_title_and_body(self, note_id: int, title: str, body: str) -> None:
        with self._locked("update_title_and_body"):
            self.repository.update_title_and_body(note_id, title, body)

    @traced("delete")
    def delete(self, note_id: int) -> None:
        with self._locked("delete"):
            self.repository.delete(note_id)

    @traced("delete_many")
    def delete_many(self, ids: Sequence[int]) -> int:
        with self._locked("delete_many"):
            return self.repository.delete_many(ids)

    @traced("count")
    def count(self) -> int:
        with self._locked("count"):
            return self.repository.count()

    @traced("seed")
    def seed(self, count: int) -> None:
        with self._locked("seed"):
            self.repository.seed(count)

    @traced("import_file")
    def import_file(self, path: PathLike) -> Tuple[bool, Optional[int]]:
        with self._locked("import_file"):
            return self.import_service.import_file(path)

    @traced("import_files")
    def import_files(self, paths: Iterable[PathLike]) -> ImportResult:
        with self._locked("import_files"):
            return self.import_service.import_files(paths)

    @traced("export_notes")
    def export_notes(
        self, ids: Iterable[int], target_dir: Optional[PathLike] = None
    ) -> int:
        with self._locked("export_notes"):
            return self.export_service.export_notes(ids, target_dir)

    def close(self) -> None:
        """Release the database connection."""
        with self._locked("close"):
            self.repository.engine.dispose()
        logger.info("Note store closed")


_store: Optional[NoteStore] = None
_store_guard = threading.Lock()


def open_store(database_path: Optional[Path] = None, **kwargs: Any) -> NoteStore:
    """Open the process-wide store, replacing (and closing) any previous one."""
    global _store
    with _store_guard:
        if _store is not None:
            _store.close()
        _store = NoteStore(database_path=database_path, **kwargs)
        return _store


def get_store() -> NoteStore:
    """Return the process-wide store, opening it from config on first use."""
    global _store
    with _store_guard:
        if _store is None:
            _store = NoteStore()
        return _store


def close_store() -> None:
    """Close and forget the process-wide store, if one is open."""
    global _store
    with _store_guard:
        if _store is not None:
            _store.close()
            _store = None
