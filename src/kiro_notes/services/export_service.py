"""Service for exporting notes as Markdown files."""

import logging
from pathlib import Path
from typing import Iterable, Optional, Union

from kiro_notes.config import config
from kiro_notes.exceptions import ExportFailedError
from kiro_notes.models.schema import Note
from kiro_notes.storage.note_repository import NoteRepository
from kiro_notes.utils import sanitize_for_filename

logger = logging.getLogger(__name__)

EXPORT_TIME_FORMAT = "%Y-%m-%d %H:%M"


def export_filename(note_id: int, title: str) -> str:
    """Build ``note-<id>-<title>.md``, or ``note-<id>.md`` for unusable titles."""
    safe_title = sanitize_for_filename(title)
    if not safe_title:
        return f"note-{note_id}.md"
    return f"note-{note_id}-{safe_title}.md"


def render_markdown(note: Note) -> str:
    """Render a note as a Markdown document: heading, timestamps, body."""
    return (
        f"# {note.title}\n\n"
        f"_Created: {note.created_at.strftime(EXPORT_TIME_FORMAT)} | "
        f"Updated: {note.updated_at.strftime(EXPORT_TIME_FORMAT)}_\n\n"
        f"{note.body}"
    )


def default_export_dir() -> Path:
    """Directory used when the caller does not name one."""
    return config.get_export_dir()


class ExportService:
    """Writes stored notes to a directory, one Markdown file per note."""

    def __init__(self, repository: NoteRepository):
        self.repository = repository

    def export_notes(
        self, ids: Iterable[int], target_dir: Optional[Union[str, Path]] = None
    ) -> int:
        """Export the given notes into ``target_dir``.

        Identifiers without a stored note are skipped. Notes are written in
        ascending id order; file names depend only on id and title.

        Returns:
            Number of files written.

        Raises:
            ExportFailedError: If the directory or a file cannot be written.
        """
        target = Path(target_dir) if target_dir is not None else default_export_dir()
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ExportFailedError(
                "Could not create export directory", path=str(target), original_error=e
            ) from e

        notes = sorted(self.repository.get_many(list(ids)), key=lambda n: n.id)
        count = 0
        for note in notes:
            file_path = target / export_filename(note.id, note.title)
            try:
                # newline="" keeps the body byte-for-byte on every platform
                with open(file_path, "w", encoding="utf-8", newline="") as f:
                    f.write(render_markdown(note))
            except OSError as e:
                raise ExportFailedError(
                    f"Failed to write export for note {note.id}",
                    path=str(file_path),
                    original_error=e,
                ) from e
            count += 1

        logger.info(f"Exported {count} notes to {target}")
        return count
