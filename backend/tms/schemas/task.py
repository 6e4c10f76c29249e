from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import datetime

from tms.models.task import TaskStatus
from tms.schemas.user import UserSummary

class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True

class TaskAssign(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str
    due_date: datetime
    priority: str
    assigned_to: str  # assignee username

class TaskReassign(CamelModel):
    assigned_to: str

class TaskStatusUpdate(CamelModel):
    task_id: int
    status: TaskStatus

class TaskSummary(CamelModel):
    id: int
    title: str
    description: str
    due_date: Optional[datetime]
    priority: Optional[str]
    status: TaskStatus

class TaskResponse(TaskSummary):
    created_by_id: int
    assigned_to_id: Optional[int]

    # Related data
    created_by: Optional[UserSummary] = None
    assigned_to: Optional[UserSummary] = None

class TaskCount(CamelModel):
    status: TaskStatus
    count: int
