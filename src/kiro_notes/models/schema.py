"""Data models for Kiro Notes."""

import datetime
import logging
import re
from dataclasses import dataclass
from datetime import timezone
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from kiro_notes.utils import collapse_whitespace

logger = logging.getLogger(__name__)

# Number of body characters shown in search listings
PREVIEW_LENGTH = 100

# Fractional seconds beyond microsecond precision (written by older builds)
_EXTRA_FRACTION_PATTERN = re.compile(r"(\.\d{6})\d+")


def utc_now() -> datetime.datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current time with UTC timezone info attached.
    """
    return datetime.datetime.now(timezone.utc)


def ensure_timezone_aware(dt_value: datetime.datetime) -> datetime.datetime:
    """Ensure a datetime is timezone-aware, treating naive datetimes as UTC.

    Args:
        dt_value: A datetime that may or may not have timezone info.

    Returns:
        The same instant expressed in UTC.
    """
    if dt_value.tzinfo is None:
        return dt_value.replace(tzinfo=timezone.utc)
    return dt_value.astimezone(timezone.utc)


def format_timestamp(dt_value: datetime.datetime) -> str:
    """Render a datetime the way it is stored: UTC ISO-8601 with microseconds.

    A fixed width keeps lexical order equal to chronological order in SQL.
    """
    return ensure_timezone_aware(dt_value).isoformat(timespec="microseconds")


def parse_timestamp(value: str) -> datetime.datetime:
    """Parse a stored ISO-8601/RFC 3339 timestamp into an aware UTC datetime.

    Accepts a trailing ``Z`` and fractional seconds longer than six digits.
    Unparseable values fall back to the current time so a single bad row
    does not make a listing fail.
    """
    normalized = value.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    normalized = _EXTRA_FRACTION_PATTERN.sub(r"\1", normalized)
    try:
        return ensure_timezone_aware(datetime.datetime.fromisoformat(normalized))
    except ValueError:
        logger.warning(f"Unparseable timestamp {value!r}; using current time")
        return utc_now()


class Note(BaseModel):
    """A stored note."""

    id: int = Field(..., description="Store-assigned identifier")
    title: str = Field(..., description="Title of the note")
    body: str = Field(..., description="Free-text body of the note")
    created_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was created (UTC)"
    )
    updated_at: datetime.datetime = Field(
        default_factory=utc_now, description="When the note was last updated (UTC)"
    )
    import_hash: Optional[str] = Field(
        default=None, description="Content fingerprint, set only for imported notes"
    )

    model_config = {"validate_assignment": True, "extra": "forbid"}

    def snippet(self, max_len: int) -> str:
        """Title and body on a single line, truncated to ``max_len`` characters."""
        single_line = f"{self.title}\n{self.body}".replace("\n", " ")
        if len(single_line) > max_len:
            return f"{single_line[:max_len]}..."
        return single_line


class SearchResult(BaseModel):
    """Compact projection of a note for search listings."""

    id: int
    title: str
    body_preview: str
    created_at: datetime.datetime
    word_count: int

    model_config = {"frozen": True}

    @classmethod
    def from_fields(
        cls, id: int, title: str, body: str, created_at: datetime.datetime
    ) -> "SearchResult":
        """Build a result, deriving the preview and word count from the full body."""
        return cls(
            id=id,
            title=title,
            body_preview=body[:PREVIEW_LENGTH],
            created_at=created_at,
            word_count=len(body.split()),
        )

    def display_text(self, max_len: int) -> str:
        """Format title and body preview on one line, fitting ``max_len``."""
        if self.body_preview:
            combined = f"{self.title} - {self.body_preview}"
        else:
            combined = self.title

        clean = collapse_whitespace(combined)
        if len(clean) > max_len:
            return f"{clean[:max(max_len - 3, 0)]}..."
        return clean

    def date_str(self) -> str:
        """Creation date in compact US format (MM/DD/YY)."""
        return self.created_at.strftime("%m/%d/%y")

    def words_str(self) -> str:
        """Word count with a 'w' suffix, or thousands with a 'k' suffix."""
        if self.word_count >= 10000:
            return f"{self.word_count // 1000}k"
        return f"{self.word_count}w"


@dataclass(frozen=True)
class DateFilter:
    """A year, or year and month, constraint on a note's creation time.

    Attributes:
        year: Calendar year (1900-2100).
        month: Month 1-12, or None to match the whole year.
    """

    year: int
    month: Optional[int] = None

    def bounds(self) -> Tuple[datetime.datetime, datetime.datetime]:
        """Half-open UTC interval [start, end) covered by this filter."""
        if self.month is None:
            start = datetime.datetime(self.year, 1, 1, tzinfo=timezone.utc)
            end = datetime.datetime(self.year + 1, 1, 1, tzinfo=timezone.utc)
        else:
            start = datetime.datetime(self.year, self.month, 1, tzinfo=timezone.utc)
            if self.month == 12:
                end = datetime.datetime(self.year + 1, 1, 1, tzinfo=timezone.utc)
            else:
                end = datetime.datetime(
                    self.year, self.month + 1, 1, tzinfo=timezone.utc
                )
        return start, end


@dataclass(frozen=True)
class ParsedQuery:
    """A search string split into its date filter and residual text."""

    date_filter: Optional[DateFilter]
    text: str


class ImportResult(BaseModel):
    """Outcome of a batch import."""

    imported: int = 0
    skipped: int = 0
    ids: List[int] = Field(default_factory=list)
