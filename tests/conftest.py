"""Common test fixtures for Kiro Notes."""

import datetime
from datetime import timezone

import pytest
from sqlalchemy import update

from kiro_notes.config import config
from kiro_notes.models.db_models import DBNote
from kiro_notes.services.export_service import ExportService
from kiro_notes.services.import_service import ImportService
from kiro_notes.services.search_service import SearchService
from kiro_notes.store import close_store, open_store
from kiro_notes.storage.note_repository import NoteRepository


@pytest.fixture
def test_config(tmp_path, monkeypatch):
    """Point database, logs and exports at a temporary directory."""
    monkeypatch.setattr(config, "database_path", tmp_path / "db" / "notes.db")
    monkeypatch.setattr(config, "log_dir", tmp_path / "logs")
    monkeypatch.setattr(config, "export_dir", tmp_path / "exports")
    yield config


@pytest.fixture
def note_repository(test_config):
    """Create a test note repository backed by a temporary SQLite file."""
    repository = NoteRepository(database_path=test_config.database_path)
    yield repository
    repository.engine.dispose()


@pytest.fixture
def search_service(note_repository):
    return SearchService(note_repository)


@pytest.fixture
def import_service(note_repository):
    return ImportService(note_repository)


@pytest.fixture
def export_service(note_repository):
    return ExportService(note_repository)


@pytest.fixture
def store(test_config):
    """Open the process-wide store on a temporary database."""
    note_store = open_store(test_config.database_path)
    yield note_store
    close_store()


def utc(*args) -> datetime.datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime.datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def backdate(note_repository):
    """Return a helper that rewrites a note's timestamps.

    Both created_at and updated_at are set so the note stays consistent.
    """

    def _backdate(note_id: int, when: datetime.datetime) -> None:
        with note_repository.session_factory() as session:
            session.execute(
                update(DBNote)
                .where(DBNote.id == note_id)
                .values(created_at=when, updated_at=when)
            )
            session.commit()

    return _backdate
