from __future__ import annotations

from datetime import datetime
from typing import Optional, TypedDict
from uuid import UUID

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 120
DESCRIPTION_MAX_LENGTH = 2000


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A plain record representing a stored Task. Both storage backends read and
    write this shape; routers convert it to the public schema.

    Fields:
    - id: UUID4 assigned once at creation
    - title: Trimmed title (3..120 chars)
    - description: Optional description (0..2000 chars)
    - completed: Boolean completion flag, False on creation
    - created_at: UTC creation timestamp, never changed
    - updated_at: UTC timestamp of the last mutation (>= created_at)
    """

    id: UUID
    title: str
    description: Optional[str]
    completed: bool
    created_at: datetime
    updated_at: datetime
