from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .Enums import TaskPriority, TaskStatus


class TaskResponse(BaseModel):
    id: str
    userId: str
    title: str
    description: Optional[str] = None
    status: TaskStatus
    priority: TaskPriority
    dueDate: Optional[date] = None
    tags: List[str] = Field(default_factory=list)
    createdAt: datetime
