from .Enums import TaskPriority, TaskStatus
from .SuggestRequest import SuggestRequest
from .TaskCreate import TaskCreate, parse_due_date
from .TaskResponse import TaskResponse
from .TaskUpdate import TaskUpdate
from .User import LoginRequest, UserCreate, UserResponse

__all__ = [
    "LoginRequest",
    "SuggestRequest",
    "TaskCreate",
    "TaskPriority",
    "TaskResponse",
    "TaskStatus",
    "TaskUpdate",
    "UserCreate",
    "UserResponse",
    "parse_due_date",
]
