"""Tests for importing text files as notes."""
import datetime
import os
from datetime import timezone
from pathlib import Path

import pytest

from kiro_notes.exceptions import ImportFailedError
from kiro_notes.services.import_service import (
    UNTITLED_PLACEHOLDER,
    compute_fingerprint,
    title_from_path,
)

from conftest import utc


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


class TestHelpers:
    """Tests for fingerprints and titles."""

    def test_fingerprint_is_sha256_of_title_and_body(self):
        fingerprint = compute_fingerprint("a", "b")
        assert len(fingerprint) == 64
        assert fingerprint == compute_fingerprint("a", "b")
        assert fingerprint != compute_fingerprint("a|", "|b")

    def test_title_from_path_strips_extension(self):
        assert title_from_path(Path("/tmp/notes/meeting.txt")) == "meeting"
        assert title_from_path(Path("archive.tar.gz")) == "archive.tar"

    def test_title_from_path_placeholder(self):
        assert title_from_path(Path("/")) == UNTITLED_PLACEHOLDER


class TestImportFile:
    """Tests for importing a single file."""

    def test_import_creates_note(self, import_service, note_repository, tmp_path):
        path = _write(tmp_path / "in" / "groceries.txt", "milk\neggs\n")

        imported, note_id = import_service.import_file(path)

        assert imported is True
        note = note_repository.get(note_id)
        assert note.title == "groceries"
        assert note.body == "milk\neggs\n"
        assert note.import_hash == compute_fingerprint("groceries", "milk\neggs\n")

    def test_created_at_from_modification_time(self, import_service, note_repository, tmp_path):
        path = _write(tmp_path / "dated.txt", "old content")
        modified = utc(2021, 5, 4, 3, 2, 1)
        os.utime(path, (modified.timestamp(), modified.timestamp()))

        _, note_id = import_service.import_file(path)

        assert note_repository.get(note_id).created_at == modified

    def test_same_file_twice_is_skipped(self, import_service, note_repository, tmp_path):
        path = _write(tmp_path / "twice.txt", "content")
        assert import_service.import_file(path)[0] is True
        assert import_service.import_file(path) == (False, None)
        assert note_repository.count() == 1

    def test_same_body_different_name_is_skipped(self, import_service, tmp_path):
        _write(tmp_path / "a" / "one.txt", "shared body")
        import_service.import_file(tmp_path / "a" / "one.txt")

        path = _write(tmp_path / "b" / "two.txt", "shared body")
        assert import_service.find_duplicate_reason("two", "shared body") == "body"
        assert import_service.import_file(path) == (False, None)

    def test_body_of_authored_note_is_duplicate(self, import_service, note_repository, tmp_path):
        """Notes typed in the app count as evidence too."""
        note_repository.create("Typed", "written by hand")
        path = _write(tmp_path / "copy.txt", "written by hand")
        assert import_service.import_file(path) == (False, None)

    def test_same_title_and_prefix_is_skipped(self, import_service, note_repository, tmp_path):
        """An edited copy sharing title and first 200 characters is skipped."""
        _write(tmp_path / "v1" / "plan.txt", "A" * 250)
        import_service.import_file(tmp_path / "v1" / "plan.txt")

        path = _write(tmp_path / "v2" / "plan.txt", "A" * 200 + "B" * 10)
        body = path.read_text(encoding="utf-8")
        assert import_service.find_duplicate_reason("plan", body) == "title_prefix"
        assert import_service.import_file(path) == (False, None)
        assert note_repository.count() == 1

    def test_same_title_different_prefix_is_imported(self, import_service, note_repository, tmp_path):
        _write(tmp_path / "v1" / "plan.txt", "first draft")
        import_service.import_file(tmp_path / "v1" / "plan.txt")

        path = _write(tmp_path / "v2" / "plan.txt", "completely different")
        imported, _ = import_service.import_file(path)
        assert imported is True
        assert note_repository.count() == 2

    def test_line_endings_preserved(self, import_service, note_repository, tmp_path):
        """CRLF and lone CR survive import byte for byte."""
        path = tmp_path / "windows.txt"
        path.write_bytes(b"line one\r\nline two\r\nold mac\rend")

        _, note_id = import_service.import_file(path)

        note = note_repository.get(note_id)
        assert note.body == "line one\r\nline two\r\nold mac\rend"
        assert note.import_hash == compute_fingerprint("windows", note.body)

    def test_crlf_file_is_not_duplicate_of_lf_note(self, import_service, note_repository, tmp_path):
        """Line endings are part of the body compared for duplicates."""
        note_repository.create("typed", "a\nb")
        path = tmp_path / "typed.txt"
        path.write_bytes(b"a\r\nb")
        imported, _ = import_service.import_file(path)
        assert imported is True

    def test_future_mtime_clamped_to_now(self, import_service, note_repository, tmp_path):
        """A file dated in the future cannot make created_at exceed updated_at."""
        path = _write(tmp_path / "future.txt", "from tomorrow")
        future = datetime.datetime.now(timezone.utc) + datetime.timedelta(days=1)
        os.utime(path, (future.timestamp(), future.timestamp()))

        _, note_id = import_service.import_file(path)

        note = note_repository.get(note_id)
        assert note.created_at <= note.updated_at
        assert note.created_at < future

    def test_path_with_nul_byte_raises(self, import_service, tmp_path):
        with pytest.raises(ImportFailedError):
            import_service.import_file(str(tmp_path / "bad\0name.txt"))

    def test_missing_file_raises(self, import_service, tmp_path):
        with pytest.raises(ImportFailedError):
            import_service.import_file(tmp_path / "missing.txt")

    def test_non_utf8_file_raises(self, import_service, tmp_path):
        path = tmp_path / "binary.txt"
        path.write_bytes(b"\xff\xfe\x00\x80")
        with pytest.raises(ImportFailedError):
            import_service.import_file(path)


class TestImportFiles:
    """Tests for batch imports."""

    def test_counts_and_ids(self, import_service, note_repository, tmp_path):
        """Failures and duplicates are both counted as skips."""
        first = _write(tmp_path / "first.txt", "one")
        second = _write(tmp_path / "second.txt", "two")
        duplicate = _write(tmp_path / "dup" / "first.txt", "one")
        missing = tmp_path / "missing.txt"

        result = import_service.import_files([first, missing, second, duplicate])

        assert result.imported == 2
        assert result.skipped == 2
        assert len(result.ids) == 2
        assert [note_repository.get(i).title for i in result.ids] == ["first", "second"]

    def test_unusable_path_is_skipped(self, import_service, note_repository, tmp_path):
        """A path the OS rejects outright does not abort the batch."""
        good = _write(tmp_path / "good.txt", "fine")

        result = import_service.import_files([str(tmp_path / "bad\0name.txt"), good])

        assert (result.imported, result.skipped) == (1, 1)
        assert note_repository.get(result.ids[0]).title == "good"

    def test_empty_batch(self, import_service):
        result = import_service.import_files([])
        assert result.imported == 0
        assert result.skipped == 0
        assert result.ids == []

    def test_duplicates_within_one_batch(self, import_service, tmp_path):
        """Files earlier in the batch count as evidence for later ones."""
        a = _write(tmp_path / "x" / "same.txt", "body")
        b = _write(tmp_path / "y" / "same.txt", "body")
        result = import_service.import_files([str(a), str(b)])
        assert (result.imported, result.skipped) == (1, 1)
