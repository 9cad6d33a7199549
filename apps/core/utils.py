"""Small helpers shared across apps."""
from typing import Optional
from uuid import UUID


def parse_id(value) -> Optional[UUID]:
    """
    Parse a record identifier coming from a URL or form field.

    Returns None for anything that is not a UUID, so callers can treat a
    malformed id the same as an unknown one.
    """
    if isinstance(value, UUID):
        return value
    if not value:
        return None
    try:
        return UUID(str(value).strip())
    except (ValueError, AttributeError):
        return None
