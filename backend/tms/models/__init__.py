from tms.core.database import Base

# Imported so both tables are registered on Base.metadata before create_all
from tms.models.user import User, Role
from tms.models.task import UserTask, TaskStatus

__all__ = ['Base', 'User', 'Role', 'UserTask', 'TaskStatus']
