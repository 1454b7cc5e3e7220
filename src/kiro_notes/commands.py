"""Command surface consumed by the desktop shell.

Each command maps to one store operation and returns a ``CommandResult``:
a JSON-ready payload on success, or a string-rendered error. Exceptions never
cross this boundary, and neither do error codes.
"""

import functools
import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from kiro_notes.exceptions import KiroError
from kiro_notes.services.export_service import default_export_dir
from kiro_notes.store import get_store

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class CommandResult(BaseModel):
    """Outcome of a command: ``data`` when ``ok``, otherwise ``error``."""

    ok: bool
    data: Any = None
    error: Optional[str] = None


def format_error_response(error: Exception) -> str:
    """Format an error in a consistent way.

    Domain errors carry a message meant for the user. Anything else is
    logged in full and reported with a reference id only.
    """
    # Generate a unique error ID for traceability in logs
    error_id = str(uuid.uuid4())[:8]

    if isinstance(error, KiroError):
        logger.error(
            f"[{error.code.name}] [{error_id}]: {error.message}",
            extra={"error_details": error.details},
        )
        return f"Error: {error.message}"
    elif isinstance(error, ValueError):
        logger.error(f"Validation error [{error_id}]: {str(error)}")
        return f"Error: Invalid input (ref: {error_id})"
    elif isinstance(error, OSError):
        logger.error(f"File system error [{error_id}]: {str(error)}", exc_info=True)
        return f"Error: A file system error occurred (ref: {error_id})"
    else:
        logger.error(f"Unexpected error [{error_id}]: {str(error)}", exc_info=True)
        return f"Error: An unexpected error occurred (ref: {error_id})"


def command(func: F) -> Callable[..., CommandResult]:
    """Wrap a command so it always returns a CommandResult."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> CommandResult:
        try:
            return CommandResult(ok=True, data=func(*args, **kwargs))
        except Exception as e:
            return CommandResult(ok=False, error=format_error_response(e))

    return wrapper


@command
def search(query: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
    results = get_store().search(query, limit)
    return [result.model_dump(mode="json") for result in results]


@command
def get_note(note_id: int) -> Optional[Dict[str, Any]]:
    note = get_store().get(note_id)
    return note.model_dump(mode="json") if note is not None else None


@command
def create_note(title: str, body: str) -> int:
    return get_store().create(title, body)


@command
def update_note(note_id: int, body: str) -> None:
    get_store().update(note_id, body)


@command
def update_note_full(note_id: int, title: str, body: str) -> None:
    get_store().update_title_and_body(note_id, title, body)


@command
def delete_notes(ids: Sequence[int]) -> int:
    return get_store().delete_many(ids)


@command
def get_note_count() -> int:
    return get_store().count()


@command
def seed_notes(count: int) -> None:
    get_store().seed(count)


@command
def import_files(paths: Sequence[str]) -> Dict[str, Any]:
    return get_store().import_files(paths).model_dump()


@command
def export_notes(ids: Sequence[int], target_dir: Optional[str] = None) -> str:
    """Export notes and describe where they went."""
    target = Path(target_dir) if target_dir else default_export_dir()
    count = get_store().export_notes(ids, target)
    return f"Exported {count} notes to {target}"
