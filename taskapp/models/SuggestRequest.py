from typing import Optional

from pydantic import BaseModel


class SuggestRequest(BaseModel):
    taskTitle: str
    taskDescription: Optional[str] = None
