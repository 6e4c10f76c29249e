import enum

from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from tms.core.database import Base

class Role(str, enum.Enum):
    user = "User"
    admin = "Admin"

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(150), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # bcrypt hash
    role = Column(
        SQLEnum(Role, name="role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=Role.user,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    assigned_tasks = relationship(
        "UserTask", foreign_keys="UserTask.assigned_to_id", back_populates="assigned_to"
    )
    created_tasks = relationship(
        "UserTask", foreign_keys="UserTask.created_by_id", back_populates="created_by"
    )
