import math
import re
from typing import Any, NamedTuple

from tasktracker.models import PaginationMetadata

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100  # prevents requesting too many items
# keeps (page - 1) * MAX_LIMIT inside a signed 64-bit OFFSET
MAX_PAGE = 2**53 - 1

_LEADING_INT = re.compile(r"^\s*([+-]?)(\d+)")


class PaginationParams(NamedTuple):
    page: int
    limit: int


def _parse_positive_int(raw: Any, default: int, maximum: int) -> int:
    """
    Parse an untrusted query value, falling back to ``default``.

    Values above ``maximum`` are clamped to it.
    """
    if raw is None or isinstance(raw, bool):
        return default
    if isinstance(raw, (int, float)):
        value = int(raw) if math.isfinite(raw) else 0
    else:
        match = _LEADING_INT.match(str(raw))
        if match is None:
            return default
        sign, digits = match.group(1), match.group(2).lstrip("0") or "0"
        if len(digits) > len(str(maximum)):
            # out of range, and possibly too long for int()
            return default if sign == "-" else maximum
        value = -int(digits) if sign == "-" else int(digits)
    if value < 1:
        return default
    return min(value, maximum)


def validate_pagination_params(page: Any = None, limit: Any = None) -> PaginationParams:
    """
    Normalize raw page/limit values.

    Missing, non-numeric, zero or negative values fall back to the
    defaults; ``page`` is clamped down to MAX_PAGE and ``limit`` to
    MAX_LIMIT. Never raises.
    """
    valid_page = _parse_positive_int(page, DEFAULT_PAGE, MAX_PAGE)
    valid_limit = _parse_positive_int(limit, DEFAULT_LIMIT, MAX_LIMIT)
    return PaginationParams(page=valid_page, limit=valid_limit)


def calculate_skip(page: int, limit: int) -> int:
    """Number of rows to skip for a 1-indexed page."""
    return (page - 1) * limit


def calculate_pagination_metadata(
    current_page: int, items_per_page: int, total_items: int
) -> PaginationMetadata:
    # at least one page, even if empty
    total_pages = max(math.ceil(total_items / items_per_page), 1)
    return PaginationMetadata(
        current_page=current_page,
        total_pages=total_pages,
        total_items=total_items,
        items_per_page=items_per_page,
        has_next_page=current_page < total_pages,
        has_previous_page=current_page > 1,
    )
