from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional
from uuid import UUID, uuid4

from .errors import DESCRIPTION_LENGTH, TITLE_LENGTH, TITLE_REQUIRED, NotFoundError, ValidationError
from .models import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH, TITLE_MIN_LENGTH, TaskEntity
from .queries import compose_list_query
from .repositories import Repository
from .utils import pagination_envelope, utcnow

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def validate_task_fields(title: Optional[str], description: Optional[str]) -> str:
    """
    Check title/description constraints and return the title unchanged.

    A blank title is reported as required; otherwise the length limits apply
    to the title exactly as given, surrounding whitespace included.

    Raises:
        ValidationError listing every violated field.
    """
    errors: List[str] = []
    if title is None or not title.strip():
        errors.append(TITLE_REQUIRED)
    elif not (TITLE_MIN_LENGTH <= len(title) <= TITLE_MAX_LENGTH):
        errors.append(TITLE_LENGTH)

    if description is not None and len(description) > DESCRIPTION_MAX_LENGTH:
        errors.append(DESCRIPTION_LENGTH)

    if errors:
        raise ValidationError(errors)
    return title


class TaskService:
    """
    Business operations on tasks.

    Every mutation runs inside one repository transaction: the existence
    check, the change and the write commit together. There is no version
    check, so two concurrent updates of the same task resolve as
    last-write-wins.
    """

    def __init__(
        self,
        repository: Repository,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        self._repo = repository
        self._clock = clock
        self._id_factory = id_factory

    def _touch(self, entity: TaskEntity) -> None:
        entity["updated_at"] = max(self._clock(), entity["created_at"])

    def _require(self, task_id: UUID) -> TaskEntity:
        entity = self._repo.get(task_id)
        if entity is None:
            logger.warning("Task not found with id: %s", task_id)
            raise NotFoundError(task_id)
        return entity

    def create(self, title: Optional[str], description: Optional[str] = None) -> TaskEntity:
        valid_title = validate_task_fields(title, description)
        now = self._clock()
        entity: TaskEntity = {
            "id": self._id_factory(),
            "title": valid_title,
            "description": description,
            "completed": False,
            "created_at": now,
            "updated_at": now,
        }
        with self._repo.transaction():
            created = self._repo.add(entity)
        logger.info("Created task %s", created["id"])
        return created

    def get(self, task_id: UUID) -> TaskEntity:
        logger.debug("Fetching task %s", task_id)
        return self._require(task_id)

    def list(
        self,
        completed: Optional[bool] = None,
        search: Optional[str] = None,
        page: Optional[int] = 0,
        size: Optional[int] = 10,
    ) -> Dict[str, object]:
        """
        Return one page of tasks as a pagination envelope dict
        (see utils.pagination_envelope).
        """
        query = compose_list_query(completed=completed, search=search, page=page, size=size)
        logger.debug(
            "Listing tasks mode=%s completed=%s search=%r page=%d size=%d",
            query.mode.value, query.completed, query.search, query.page, query.size,
        )
        items, total = self._repo.list(query)
        return pagination_envelope(items, total=total, page=query.page, size=query.size)

    def update(
        self,
        task_id: UUID,
        title: Optional[str],
        description: Optional[str] = None,
        completed: Optional[bool] = None,
    ) -> TaskEntity:
        """
        Replace title and description; `completed` is applied only when given.
        """
        valid_title = validate_task_fields(title, description)
        with self._repo.transaction():
            entity = self._require(task_id)
            entity["title"] = valid_title
            entity["description"] = description
            if completed is not None:
                entity["completed"] = completed
            self._touch(entity)
            updated = self._repo.save(entity)
        logger.info("Updated task %s", task_id)
        return updated

    def toggle(self, task_id: UUID) -> TaskEntity:
        with self._repo.transaction():
            entity = self._require(task_id)
            entity["completed"] = not entity["completed"]
            self._touch(entity)
            updated = self._repo.save(entity)
        logger.info("Task %s is now %s", task_id, "completed" if updated["completed"] else "pending")
        return updated

    def delete(self, task_id: UUID) -> None:
        with self._repo.transaction():
            if not self._repo.exists(task_id):
                logger.warning("Task not found with id: %s", task_id)
                raise NotFoundError(task_id)
            self._repo.delete(task_id)
        logger.info("Deleted task %s", task_id)

    def stats(self) -> Dict[str, int]:
        with self._repo.transaction():
            total = self._repo.count()
            completed = self._repo.count(completed=True)
        return {"total": total, "completed": completed, "pending": total - completed}
