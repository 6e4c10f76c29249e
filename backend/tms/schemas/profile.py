from typing import List

from tms.models.user import Role
from tms.schemas.task import CamelModel, TaskSummary

class ProfileResponse(CamelModel):
    id: int
    username: str
    role: Role
    assigned_tasks: List[TaskSummary] = []
    created_tasks: List[TaskSummary] = []
