from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Sequence, Union


# PUBLIC_INTERFACE
def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
def pagination_envelope(
    items: Union[Sequence[Any], Iterable[Any]],
    total: int,
    page: int,
    size: int,
) -> Dict[str, Any]:
    """
    Build a standard pagination envelope for list endpoints.

    Args:
        items: The list/iterable of items for the current page.
        total: Total number of items that match the query (ignoring pagination).
        page: Zero-based page number used for the query.
        size: Page size used for the query (>= 1).

    Returns:
        Dict with keys: content, page, size, total_elements, total_pages, first, last.
    """
    materialized: List[Any] = list(items) if not isinstance(items, list) else items
    total_pages = math.ceil(total / size) if size > 0 else 0
    return {
        "content": materialized,
        "page": int(page),
        "size": int(size),
        "total_elements": int(total),
        "total_pages": int(total_pages),
        "first": page == 0,
        "last": total_pages == 0 or page == total_pages - 1,
    }
