from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from functools import lru_cache
from threading import RLock
from typing import ContextManager, Dict, Iterator, List, Optional, Tuple
from uuid import UUID

from .models import TaskEntity
from .queries import ListMode, ListQuery, contains_ignore_case
from .settings import get_settings

logger = logging.getLogger(__name__)

_COMPLETED_MODES = (ListMode.COMPLETED, ListMode.SEARCH_COMPLETED)
_SEARCH_MODES = (ListMode.SEARCH, ListMode.SEARCH_COMPLETED)


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract repository contract for task storage backends."""

    @abstractmethod
    def transaction(self) -> ContextManager[None]:
        """
        Context manager scoping one atomic unit of work. Calls made inside it
        see a consistent view and are committed together, or not at all if
        the block raises.
        """

    @abstractmethod
    def get(self, task_id: UUID) -> Optional[TaskEntity]:
        """Return a TaskEntity by id, or None if not found."""

    @abstractmethod
    def exists(self, task_id: UUID) -> bool:
        """Return True if a task with this id is stored."""

    @abstractmethod
    def add(self, entity: TaskEntity) -> TaskEntity:
        """Insert a new TaskEntity and return it."""

    @abstractmethod
    def save(self, entity: TaskEntity) -> TaskEntity:
        """Overwrite the mutable fields of an existing TaskEntity and return it."""

    @abstractmethod
    def delete(self, task_id: UUID) -> bool:
        """Delete a TaskEntity by id. Return True if deleted, False if not found."""

    @abstractmethod
    def list(self, query: ListQuery) -> Tuple[List[TaskEntity], int]:
        """
        Return one page of TaskEntities and the total count matching the query mode.
        - completed filter for COMPLETED / SEARCH_COMPLETED
        - case-insensitive substring search on title or description for SEARCH / SEARCH_COMPLETED
        - always ordered by created_at descending, windowed by offset/limit
        """

    @abstractmethod
    def count(self, completed: Optional[bool] = None) -> int:
        """Count all tasks, or only those with the given completion status."""


class InMemoryRepository(Repository):
    """
    Thread-safe in-memory repository suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[UUID, TaskEntity] = {}

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with self._lock:
            yield

    def get(self, task_id: UUID) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def exists(self, task_id: UUID) -> bool:
        with self._lock:
            return task_id in self._items

    def add(self, entity: TaskEntity) -> TaskEntity:
        with self._lock:
            if entity["id"] in self._items:
                raise KeyError(f"Duplicate task id: {entity['id']}")
            self._items[entity["id"]] = entity.copy()
            return entity.copy()

    def save(self, entity: TaskEntity) -> TaskEntity:
        with self._lock:
            if entity["id"] not in self._items:
                raise KeyError(f"Unknown task id: {entity['id']}")
            self._items[entity["id"]] = entity.copy()
            return entity.copy()

    def delete(self, task_id: UUID) -> bool:
        with self._lock:
            return self._items.pop(task_id, None) is not None

    def list(self, query: ListQuery) -> Tuple[List[TaskEntity], int]:
        q = query
        with self._lock:
            items = list(self._items.values())

            if q.mode in _COMPLETED_MODES:
                items = [t for t in items if t["completed"] == q.completed]

            if q.mode in _SEARCH_MODES and q.search:
                term = q.search
                items = [
                    t for t in items
                    if contains_ignore_case(t["title"], term) or contains_ignore_case(t["description"], term)
                ]

            total = len(items)

            # Newest insert first among equal timestamps; sorted() is stable under reverse=True
            items_sorted = sorted(reversed(items), key=lambda t: t["created_at"], reverse=True)

            page = items_sorted[q.offset:q.offset + q.limit]
            return [t.copy() for t in page], total

    def count(self, completed: Optional[bool] = None) -> int:
        with self._lock:
            if completed is None:
                return len(self._items)
            return sum(1 for t in self._items.values() if t["completed"] == completed)


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_repository() -> Repository:
    """
    Return the process-wide repository configured by settings.
    - memory: InMemoryRepository
    - sqlite: SQLiteRepository (stdlib sqlite3)
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRepository

        logger.info("Using sqlite task store at %s", settings.sqlite_db_path)
        return SQLiteRepository(settings.sqlite_db_path)
    logger.info("Using in-memory task store")
    return InMemoryRepository()
