from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from tms.core.database import get_db
from tms.core.session import Caller
from tms.routers.account import get_current_caller
from tms.schemas.task import TaskAssign, TaskCount, TaskReassign, TaskResponse, TaskStatusUpdate
from tms.services import tasks as task_service

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    responses={404: {"description": "Not found"}},
)

@router.post("/assign", response_model=TaskResponse)
async def assign_task(
    data: TaskAssign,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Create a task for a user; the calling admin is recorded as creator."""
    return await task_service.assign_task(
        db,
        caller,
        title=data.title,
        description=data.description,
        due_date=data.due_date,
        priority=data.priority,
        assigned_to=data.assigned_to,
    )

@router.put("/{task_id}/assign", response_model=TaskResponse)
async def reassign_task(
    task_id: int,
    data: TaskReassign,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.reassign_task(db, caller, task_id, data.assigned_to)

@router.post("/update-status", response_model=TaskResponse)
async def update_task_status(
    data: TaskStatusUpdate,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.update_task_status(db, caller, data.task_id, data.status)

@router.delete("/{task_id}")
async def delete_task(
    task_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    await task_service.delete_task(db, caller, task_id)
    return {"message": "Task deleted successfully"}

@router.get("/task-counts", response_model=List[TaskCount])
async def get_task_counts(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Task counts grouped by status, scoped to the caller's role."""
    return await task_service.get_task_counts(db, caller)

@router.get("/user-tasks", response_model=List[TaskResponse])
async def get_user_tasks(
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.get_user_tasks(db, caller)

@router.get("/task-detail/{task_id}", response_model=TaskResponse)
async def get_task_detail(
    task_id: int,
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    return await task_service.get_task_detail(db, caller, task_id)

@router.get("/search-tasks", response_model=List[TaskResponse])
async def search_tasks(
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    status: Optional[str] = Query(None),
    caller: Caller = Depends(get_current_caller),
    db: AsyncSession = Depends(get_db),
):
    """Caller's tasks filtered by title substring and status ("All" for any)."""
    return await task_service.search_tasks(db, caller, search_term, status)
