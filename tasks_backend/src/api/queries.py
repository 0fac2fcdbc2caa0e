from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class ListMode(str, Enum):
    """The four retrieval variants a task listing can resolve to."""

    ALL = "all"
    COMPLETED = "completed"
    SEARCH = "search"
    SEARCH_COMPLETED = "search_completed"


@dataclass(frozen=True)
class ListQuery:
    """
    Normalized parameters for listing tasks.

    Every mode is ordered by created_at descending and windowed by
    page/size; `search` is already trimmed and `completed` is only
    meaningful for the COMPLETED and SEARCH_COMPLETED modes.
    """
    mode: ListMode = ListMode.ALL
    completed: Optional[bool] = None
    search: Optional[str] = None
    page: int = 0
    size: int = DEFAULT_PAGE_SIZE

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def limit(self) -> int:
        return self.size


def normalize_page(page: Optional[int]) -> int:
    if page is None or page < 0:
        return 0
    return page


def normalize_size(size: Optional[int]) -> int:
    if size is None or size < 1:
        return DEFAULT_PAGE_SIZE
    return min(size, MAX_PAGE_SIZE)


def normalize_search(search: Optional[str]) -> Optional[str]:
    """Trim the search text; blank text means no search."""
    if search is None:
        return None
    trimmed = search.strip()
    return trimmed or None


# PUBLIC_INTERFACE
def compose_list_query(
    completed: Optional[bool] = None,
    search: Optional[str] = None,
    page: Optional[int] = 0,
    size: Optional[int] = DEFAULT_PAGE_SIZE,
) -> ListQuery:
    """
    Resolve optional filters and raw pagination input into a ListQuery.

    - size > 100 is clamped to 100, size < 1 falls back to 10
    - negative page falls back to 0
    - whitespace-only search is treated as absent
    """
    term = normalize_search(search)
    if term is not None and completed is not None:
        mode = ListMode.SEARCH_COMPLETED
    elif term is not None:
        mode = ListMode.SEARCH
    elif completed is not None:
        mode = ListMode.COMPLETED
    else:
        mode = ListMode.ALL

    return ListQuery(
        mode=mode,
        completed=completed if mode in (ListMode.COMPLETED, ListMode.SEARCH_COMPLETED) else None,
        search=term,
        page=normalize_page(page),
        size=normalize_size(size),
    )


def contains_ignore_case(text: Optional[str], term: str) -> bool:
    """Case-insensitive substring test shared by every storage backend."""
    if text is None:
        return False
    return term.lower() in text.lower()
