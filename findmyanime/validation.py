"""
findmyanime.validation — Payload normalization shared by routes and services
=============================================================================

Free text is trimmed and capped, enum-like fields are whitelisted with a
silent fallback, ids must be positive integers and list endpoints clamp
their paging window.  Anything that cannot be repaired raises
:class:`ValueError`, which the routes turn into HTTP 400.
"""

from __future__ import annotations

import enum
import math
from typing import Annotated, Any, TypeVar

from pydantic import Field, StrictInt

E = TypeVar("E", bound=enum.StrEnum)

# Free-text caps
POST_MAX_LENGTH = 2000
REPLY_MAX_LENGTH = 1000
REVIEW_MAX_LENGTH = 2000
USERNAME_MAX_LENGTH = 50

# Ids and counters live in INTEGER columns (32-bit signed on PostgreSQL)
MAX_DB_INT = 2**31 - 1

# Paging
MIN_LIMIT = 1
MAX_LIMIT = 100
MAX_PAGE = MAX_DB_INT // MAX_LIMIT

# Request body field types; out-of-range values fail validation with a 400
RowId = Annotated[StrictInt, Field(gt=0, le=MAX_DB_INT)]
Counter = Annotated[StrictInt, Field(le=MAX_DB_INT)]


def clean_text(value: Any, max_length: int, *, field: str = "content") -> str:
    """Trim *value* and cap it at *max_length* characters.

    Raises ``ValueError`` if nothing is left after trimming.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field.capitalize()} is required")
    return value.strip()[:max_length]


def coerce_choice(value: Any, choices: type[E], default: E) -> E:
    """Return *value* as a member of *choices*, or *default* when it isn't one."""
    try:
        return choices(value)
    except ValueError:
        return default


def positive_id(value: Any, *, field: str = "id") -> int:
    """Validate that *value* is a positive integer id that fits an INTEGER column."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid {field}")
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            raise ValueError(f"Invalid {field}")
        value = int(value)
    elif isinstance(value, str):
        if not value.strip().isdigit():
            raise ValueError(f"Invalid {field}")
        value = int(value.strip())
    if not isinstance(value, int) or not 0 < value <= MAX_DB_INT:
        raise ValueError(f"Invalid {field}")
    return value


def non_negative_count(value: Any, *, field: str = "count") -> int | None:
    """Clamp a progress counter to ``>= 0``; ``None`` means "leave unchanged"."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"Invalid {field}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Invalid {field}")
    count = max(0, int(value))
    if count > MAX_DB_INT:
        raise ValueError(f"Invalid {field}")
    return count


def validate_rating(value: Any) -> int:
    """Ratings are whole stars from 1 to 5."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError("Rating must be 1-5")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("Rating must be 1-5")
    rating = int(value)
    if rating < 1 or rating > 5:
        raise ValueError("Rating must be 1-5")
    return rating


def normalize_username(value: Any) -> str:
    """Usernames are compared trimmed and lowercased."""
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def clamp_paging(
    page: int | None, limit: int | None, *, default_limit: int
) -> tuple[int, int, int]:
    """Return ``(page, limit, offset)`` with limit in [1, 100] and page in [1, MAX_PAGE].

    Pages past ``MAX_PAGE`` are pinned to it; they are empty anyway.
    """
    limit = default_limit if limit is None else limit
    limit = min(MAX_LIMIT, max(MIN_LIMIT, limit))
    page = min(MAX_PAGE, max(1, page or 1))
    return page, limit, (page - 1) * limit
