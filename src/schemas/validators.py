"""
Shared validation functions for Pydantic schemas.

Used by the bookmark, tag, and bulk-operation schemas and by the tag service
when names arrive from enrichment rather than from a request body.
"""
import re

from core.config import get_settings

# Tag colors are stored as #rrggbb
COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag name.

    Args:
        tag: The tag string to validate.

    Returns:
        The normalized tag (lowercase, trimmed).

    Raises:
        ValueError: If the tag is empty or too long.
    """
    normalized = tag.lower().strip()
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    max_length = get_settings().max_tag_length
    if len(normalized) > max_length:
        raise ValueError(
            f"Tag name exceeds maximum length of {max_length} characters: '{normalized}'",
        )
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Empty strings are skipped and duplicates (after lowercasing) are removed,
    keeping the first occurrence.

    Raises:
        ValueError: If any tag is too long.
    """
    normalized: list[str] = []
    for tag in tags:
        if not tag.strip():
            continue
        name = validate_and_normalize_tag(tag)
        if name not in normalized:
            normalized.append(name)
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


def validate_color(color: str | None) -> str | None:
    """Validate a #rrggbb color string and normalize it to lowercase."""
    if color is None:
        return None
    if not COLOR_PATTERN.match(color):
        raise ValueError(f"Invalid color format: '{color}'. Use #rrggbb.")
    return color.lower()
