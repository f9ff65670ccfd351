"""
Shared validation functions for Pydantic schemas.

The URL and tag rules here are applied before anything is persisted; the
client-side form parses tag input the same way (see client.forms.parse_tags).
"""
from pydantic import HttpUrl, TypeAdapter, ValidationError

from core.config import get_settings

INVALID_URL_MESSAGE = "Invalid URL format. Please provide a valid HTTP or HTTPS URL."

_http_url_adapter = TypeAdapter(HttpUrl)


def validate_url(url: str) -> str:
    """
    Validate that a URL is a well-formed absolute http(s) URL.

    Returns the trimmed URL exactly as supplied. Unlike pydantic's HttpUrl the
    stored value is not normalized (no trailing slash is appended), so a
    bookmark created for "https://example.com" keeps that exact url and title.

    Raises:
        ValueError: If the URL is not a valid HTTP or HTTPS URL.
    """
    if not isinstance(url, str):
        raise ValueError(INVALID_URL_MESSAGE)
    trimmed = url.strip()
    if not trimmed:
        raise ValueError(INVALID_URL_MESSAGE)
    try:
        _http_url_adapter.validate_python(trimmed)
    except ValidationError as e:
        raise ValueError(INVALID_URL_MESSAGE) from e
    return trimmed


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag.

    Tags are matched exactly, so normalization only trims surrounding
    whitespace; case is preserved.

    Raises:
        ValueError: If tag is empty or too long.
    """
    normalized = tag.strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    max_length = get_settings().max_tag_length
    if len(normalized) > max_length:
        raise ValueError(
            f"Tag '{normalized[:20]}...' exceeds maximum length of {max_length} characters.",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Args:
        tags: List of tag strings to validate.

    Returns:
        List of trimmed tags, with empty strings filtered out and duplicates
        removed (preserving first occurrence order).

    Raises:
        ValueError: If any tag is too long or more tags than allowed remain.
    """
    normalized = []
    seen: set[str] = set()
    for tag in tags:
        if not isinstance(tag, str):
            raise ValueError("Tags must be strings")
        trimmed = tag.strip()
        if not trimmed:
            continue  # Skip empty tags silently
        validated = validate_and_normalize_tag(trimmed)
        if validated not in seen:
            seen.add(validated)
            normalized.append(validated)

    max_tags = get_settings().max_tags_per_bookmark
    if len(normalized) > max_tags:
        raise ValueError(f"Maximum {max_tags} tags allowed per bookmark.")
    return normalized


def validate_title_length(title: str | None) -> str | None:
    """Validate that title doesn't exceed maximum length."""
    settings = get_settings()
    if title is not None and len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_description_length(description: str | None) -> str | None:
    """Validate that description doesn't exceed maximum length."""
    settings = get_settings()
    if description is not None and len(description) > settings.max_description_length:
        max_len = settings.max_description_length
        raise ValueError(
            f"Description exceeds maximum length of {max_len:,} characters "
            f"(got {len(description):,} characters).",
        )
    return description
