"""Client-side evaluation of the list filter."""
from schemas.bookmark import BookmarkResponse


def normalize_filter(query: str | None, tag: str | None) -> tuple[str | None, str | None]:
    """Map empty filter values to None, the way they are sent to the gateway."""
    return (query or None, tag or None)


def matches(
    record: BookmarkResponse,
    query: str | None = None,
    tag: str | None = None,
) -> bool:
    """
    Decide whether a record belongs in a list filtered by (query, tag).

    Agrees with the server-side search: the tag must be one of the record's
    tags exactly, and the query must appear case-insensitively in the title,
    url or description. Absent or empty filter values always pass.
    """
    if tag and tag not in record.tags:
        return False
    if not query:
        return True

    needle = query.lower()
    haystacks = (record.title, record.url, record.description)
    return any(text is not None and needle in text.lower() for text in haystacks)
