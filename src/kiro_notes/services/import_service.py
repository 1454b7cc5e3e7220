"""Service for importing text files as notes with duplicate detection."""

import datetime
import hashlib
import logging
from datetime import timezone
from pathlib import Path
from typing import Callable, Iterable, Optional, Tuple, Union

from kiro_notes.exceptions import ImportFailedError, KiroError
from kiro_notes.models.schema import ImportResult, utc_now
from kiro_notes.storage.note_repository import NoteRepository

logger = logging.getLogger(__name__)

UNTITLED_PLACEHOLDER = "(untitled)"

# Leading body characters compared by the title+prefix duplicate check
DUPLICATE_PREFIX_LENGTH = 200

PathLike = Union[str, Path]
DuplicateCheck = Callable[[str, str], bool]


def compute_fingerprint(title: str, body: str) -> str:
    """SHA-256 hex digest identifying an imported title/body pair."""
    return hashlib.sha256(f"{title}||{body}".encode("utf-8")).hexdigest()


def title_from_path(path: Path) -> str:
    """Derive a note title from a filename, without its extension."""
    stem = path.stem
    try:
        stem.encode("utf-8")
    except UnicodeEncodeError:
        # Undecodable bytes surface as lone surrogates
        return UNTITLED_PLACEHOLDER
    return stem or UNTITLED_PLACEHOLDER


def _file_modified_at(path: Path) -> Optional[datetime.datetime]:
    try:
        return datetime.datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        logger.debug(f"No modification time for {path.name}: {e}")
        return None


class ImportService:
    """Imports files into the repository, skipping content already stored.

    Duplicate evidence is checked cheapest first and the first match wins:
    the import fingerprint, then an identical body, then the same title with
    a body that starts with the candidate's first 200 characters.
    """

    def __init__(self, repository: NoteRepository):
        self.repository = repository
        self._duplicate_checks: Tuple[Tuple[str, DuplicateCheck], ...] = (
            ("import_hash", self._matches_fingerprint),
            ("body", self._matches_body),
            ("title_prefix", self._matches_title_prefix),
        )

    def _matches_fingerprint(self, title: str, body: str) -> bool:
        return self.repository.hash_exists(compute_fingerprint(title, body))

    def _matches_body(self, title: str, body: str) -> bool:
        return self.repository.body_exists(body)

    def _matches_title_prefix(self, title: str, body: str) -> bool:
        return self.repository.title_prefix_exists(
            title, body[:DUPLICATE_PREFIX_LENGTH]
        )

    def find_duplicate_reason(self, title: str, body: str) -> Optional[str]:
        """Name of the first duplicate check that matches, or None."""
        for reason, check in self._duplicate_checks:
            if check(title, body):
                return reason
        return None

    def import_file(self, path: PathLike) -> Tuple[bool, Optional[int]]:
        """Import one text file.

        Returns:
            (True, new_id) when a note was created, (False, None) when the
            content was recognised as a duplicate.

        Raises:
            ImportFailedError: If the file cannot be read as UTF-8 text.
            StorageError: If the database rejects the lookup or insert.
        """
        path = Path(path)
        try:
            # Decoding the raw bytes keeps CRLF and lone CR line endings intact
            body = path.read_bytes().decode("utf-8")
        except (OSError, ValueError) as e:
            raise ImportFailedError(
                f"Could not read {path.name}", path=str(path), original_error=e
            ) from e

        title = title_from_path(path)
        reason = self.find_duplicate_reason(title, body)
        if reason is not None:
            logger.info(f"Skipping duplicate import {path.name} (matched {reason})")
            return False, None

        created_at = _file_modified_at(path) or utc_now()
        note_id = self.repository.insert_imported(
            title=title,
            body=body,
            created_at=created_at,
            import_hash=compute_fingerprint(title, body),
        )
        logger.info(f"Imported {path.name} as note {note_id}")
        return True, note_id

    def import_files(self, paths: Iterable[PathLike]) -> ImportResult:
        """Import files one at a time; failures are counted as skips."""
        result = ImportResult()
        for path in paths:
            try:
                imported, note_id = self.import_file(path)
            except (KiroError, OSError) as e:
                logger.warning(f"Import of {path} failed, skipping: {e}")
                result.skipped += 1
                continue

            if imported:
                result.imported += 1
                if note_id is not None:
                    result.ids.append(note_id)
            else:
                result.skipped += 1

        logger.info(
            f"Import finished: {result.imported} imported, {result.skipped} skipped"
        )
        return result
