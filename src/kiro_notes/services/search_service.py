"""Service for searching notes by keyword and creation date."""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import func, or_, select

from kiro_notes.exceptions import ValidationError
from kiro_notes.models.db_models import DBNote
from kiro_notes.models.schema import DateFilter, ParsedQuery, SearchResult
from kiro_notes.storage.note_repository import NoteRepository
from kiro_notes.utils import escape_like_pattern

logger = logging.getLogger(__name__)

YEAR_PREFIXES = ("y:", "year:")
MONTH_PREFIXES = ("m:", "month:")
MIN_YEAR = 1900
MAX_YEAR = 2100

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def _parse_int(value: str) -> Optional[int]:
    if not _INTEGER_PATTERN.fullmatch(value):
        return None
    return int(value)


def _strip_prefix(token: str, prefixes: Sequence[str]) -> Optional[str]:
    for prefix in prefixes:
        if token.startswith(prefix):
            return token[len(prefix):]
    return None


def parse_month_year(value: str) -> Optional[Tuple[int, int]]:
    """Parse ``MM/YY`` or ``MM/YYYY`` into (month, year).

    A two-character year always lands in the 2000s, so ``03/99`` is March
    2099 rather than 1999.

    Returns:
        (month, year), or None when the value is malformed or out of range.
    """
    parts = value.split("/")
    if len(parts) != 2:
        return None

    month = _parse_int(parts[0])
    if month is None or not 1 <= month <= 12:
        return None

    year_str = parts[1]
    year = _parse_int(year_str)
    if year is None:
        return None
    if len(year_str) == 2:
        year += 2000

    if not MIN_YEAR <= year <= MAX_YEAR:
        return None
    return month, year


def parse_query(query: str) -> ParsedQuery:
    """Split a search string into an optional date filter and residual text.

    Recognized tokens (prefixes are case-insensitive):
        y:2024, year:2024        whole-year filter
        m:3/24, month:03/2024    month filter

    Tokens that look like filters but carry invalid values are kept as
    ordinary text. When several valid date tokens appear, the last wins.
    """
    date_filter: Optional[DateFilter] = None
    remaining: List[str] = []

    for part in query.split():
        lower = part.lower()

        year_value = _strip_prefix(lower, YEAR_PREFIXES)
        if year_value is not None:
            year = _parse_int(year_value)
            if year is not None and MIN_YEAR <= year <= MAX_YEAR:
                date_filter = DateFilter(year=year)
                continue

        month_value = _strip_prefix(lower, MONTH_PREFIXES)
        if month_value is not None:
            parsed = parse_month_year(month_value)
            if parsed is not None:
                month, year = parsed
                date_filter = DateFilter(year=year, month=month)
                continue

        remaining.append(part)

    return ParsedQuery(date_filter=date_filter, text=" ".join(remaining))


class SearchService:
    """Service for listing and searching notes."""

    def __init__(self, repository: NoteRepository):
        self.repository = repository

    def search(self, query: str, limit: int) -> List[SearchResult]:
        """Find notes matching a query string, newest first.

        Args:
            query: Free text, optionally with year/month filter tokens.
                An empty query lists every note.
            limit: Maximum number of results.

        Returns:
            Compact results ordered by creation time, descending.

        Raises:
            ValidationError: If limit is negative.
        """
        if limit < 0:
            raise ValidationError("Search limit cannot be negative", field="limit", value=limit)
        if limit == 0:
            return []

        parsed = parse_query(query.strip())
        stmt = select(DBNote.id, DBNote.title, DBNote.body, DBNote.created_at)

        if parsed.date_filter is not None:
            start, end = parsed.date_filter.bounds()
            stmt = stmt.where(DBNote.created_at >= start, DBNote.created_at < end)

        if parsed.text:
            pattern = f"%{escape_like_pattern(parsed.text.lower())}%"
            stmt = stmt.where(
                or_(
                    func.unicode_lower(DBNote.title).like(pattern, escape="\\"),
                    func.unicode_lower(DBNote.body).like(pattern, escape="\\"),
                )
            )

        stmt = stmt.order_by(DBNote.created_at.desc()).limit(limit)

        with self.repository.session_scope("search") as session:
            rows = session.execute(stmt).all()

        logger.debug(
            f"Search {query!r}: date_filter={parsed.date_filter}, "
            f"text={parsed.text!r}, results={len(rows)}"
        )
        return [
            SearchResult.from_fields(
                id=row.id, title=row.title, body=row.body, created_at=row.created_at
            )
            for row in rows
        ]
