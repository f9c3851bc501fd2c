from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from .Enums import TaskPriority, TaskStatus


def parse_due_date(value: Any) -> Optional[date]:
    """Accept YYYY-MM-DD or a full ISO datetime; empty means no due date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValueError("dueDate must be an ISO date string")
    raw = value.strip()
    if not raw:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00")).date()
    except ValueError:
        raise ValueError("dueDate must be an ISO date string")


class TaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    dueDate: Optional[date] = None
    tags: Optional[List[str]] = None

    @field_validator("dueDate", mode="before")
    @classmethod
    def _due_date(cls, v):
        return parse_due_date(v)

    def new_task_fields(self) -> dict:
        return {
            "title": self.title,
            "description": self.description,
            "status": self.status or TaskStatus.TODO,
            "priority": self.priority or TaskPriority.MEDIUM,
            "dueDate": self.dueDate,
            "tags": list(self.tags or []),
        }
