"""Utility functions for Kiro Notes."""

MAX_FILENAME_TITLE_LENGTH = 50


def sanitize_for_filename(text: str, max_length: int = MAX_FILENAME_TITLE_LENGTH) -> str:
    """Sanitize a note title for use inside an export filename.

    Keeps only alphanumeric characters, spaces, hyphens and underscores,
    truncates to ``max_length`` characters, trims surrounding whitespace and
    turns the remaining spaces into hyphens.

    Examples:
        "Meeting notes: Q3/Q4" -> "Meeting-notes-Q3Q4"
        "  draft  " -> "draft"
        "???" -> ""

    Args:
        text: The title to sanitize.
        max_length: Maximum number of kept characters before trimming.

    Returns:
        Filesystem-safe fragment, possibly empty.
    """
    if not text:
        return ""

    kept = "".join(c for c in text if c.isalnum() or c in " -_")
    return kept[:max_length].strip().replace(" ", "-")


def escape_like_pattern(value: str) -> str:
    """Escape SQL LIKE wildcards to treat them as literals.

    Prevents SQL LIKE pattern injection where user input containing
    '%' or '_' could match unintended patterns.

    Args:
        value: User input string that may contain LIKE wildcards

    Returns:
        String with '%', '_', and '\\' escaped for safe use in LIKE clauses

    Example:
        >>> escape_like_pattern("100% complete")
        '100\\% complete'
        >>> escape_like_pattern("file_name")
        'file\\_name'
    """
    escape_table = str.maketrans(
        {
            "\\": "\\\\",  # Escape backslash first
            "%": "\\%",
            "_": "\\_",
        }
    )
    return value.translate(escape_table)


def collapse_whitespace(text: str) -> str:
    """Collapse every run of whitespace into a single space and trim."""
    return " ".join(text.split())
