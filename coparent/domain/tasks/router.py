"""Task router - FastAPI endpoints for shared family tasks"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...membership import get_family_member
from ...models import FamilyMember, User
from .schemas import TaskCreate, TaskResponse, TaskStats, TaskStatusUpdate, TaskUpdate
from .service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["Tasks"])


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    """Dependency injection for TaskService"""
    return TaskService(db)


@router.get("/{family_id}", response_model=list[TaskResponse])
async def get_tasks(
    family_id: str,
    status: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None, alias="assignedTo"),
    category: Optional[str] = Query(None),
    member: FamilyMember = Depends(get_family_member),
    service: TaskService = Depends(get_task_service),
):
    tasks = service.get_tasks(family_id, status, assigned_to, category)
    return [TaskResponse.from_model(t) for t in tasks]


@router.get("/{family_id}/stats", response_model=TaskStats)
async def get_task_stats(
    family_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: TaskService = Depends(get_task_service),
):
    """Counts by status plus open tasks past their due date"""
    return TaskStats(**service.get_stats(family_id))


@router.get("/{family_id}/{task_id}", response_model=TaskResponse)
async def get_task(
    family_id: str,
    task_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_model(service.get_task(family_id, task_id))


@router.post("/{family_id}", response_model=TaskResponse, status_code=201)
async def create_task(
    family_id: str,
    data: TaskCreate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_model(await service.create_task(family_id, data, current_user))


@router.patch("/{family_id}/{task_id}", response_model=TaskResponse)
async def update_task(
    family_id: str,
    task_id: str,
    data: TaskUpdate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_model(await service.update_task(family_id, task_id, data, current_user))


@router.patch("/{family_id}/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    family_id: str,
    task_id: str,
    data: TaskStatusUpdate,
    member: FamilyMember = Depends(get_family_member),
    current_user: User = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = await service.update_status(family_id, task_id, data.status, current_user)
    return TaskResponse.from_model(task)


@router.delete("/{family_id}/{task_id}")
async def delete_task(
    family_id: str,
    task_id: str,
    member: FamilyMember = Depends(get_family_member),
    service: TaskService = Depends(get_task_service),
):
    await service.delete_task(family_id, task_id)
    return {"message": "Task deleted"}
