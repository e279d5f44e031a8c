"""Task schemas"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...models_calendar import Task
from ...shared.validators import validate_uuid
from ...utils.dates import to_naive_utc

TaskPriority = Literal["low", "medium", "high", "urgent"]
TaskStatus = Literal["pending", "in_progress", "completed", "cancelled"]
TaskCategory = Literal["medical", "education", "activity", "shopping", "household", "paperwork", "other"]
AssignedTo = Literal["parent1", "parent2", "both"]


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    dueDate: Optional[datetime] = None
    priority: TaskPriority = "medium"
    assignedTo: AssignedTo = "both"
    category: TaskCategory = "other"
    childId: Optional[str] = None
    reminderMinutes: Optional[int] = Field(None, ge=0)

    @field_validator("dueDate")
    @classmethod
    def normalize_due_date(cls, v):
        return to_naive_utc(v)

    @field_validator("childId")
    @classmethod
    def check_child_id(cls, v):
        return validate_uuid(v)


class TaskUpdate(BaseModel):
    """Only fields sent are changed; send null to clear dueDate, childId or reminderMinutes"""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    dueDate: Optional[datetime] = None
    priority: Optional[TaskPriority] = None
    assignedTo: Optional[AssignedTo] = None
    category: Optional[TaskCategory] = None
    childId: Optional[str] = None
    reminderMinutes: Optional[int] = Field(None, ge=0)

    @field_validator("dueDate")
    @classmethod
    def normalize_due_date(cls, v):
        return to_naive_utc(v)

    @field_validator("childId")
    @classmethod
    def check_child_id(cls, v):
        return validate_uuid(v)


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskStats(BaseModel):
    total: int
    pending: int
    inProgress: int
    completed: int
    overdue: int


class TaskResponse(BaseModel):
    id: str
    familyId: str
    title: str
    description: Optional[str] = None
    dueDate: Optional[datetime] = None
    priority: str
    status: str
    assignedTo: str
    category: str
    childId: Optional[str] = None
    reminderMinutes: Optional[int] = None
    completedAt: Optional[datetime] = None
    completedById: Optional[str] = None
    createdById: str
    createdByName: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_model(cls, task: Task) -> "TaskResponse":
        return cls(
            id=task.id,
            familyId=task.family_id,
            title=task.title,
            description=task.description,
            dueDate=task.due_date,
            priority=task.priority,
            status=task.status,
            assignedTo=task.assigned_to,
            category=task.category,
            childId=task.child_id,
            reminderMinutes=task.reminder_minutes,
            completedAt=task.completed_at,
            completedById=task.completed_by_id,
            createdById=task.created_by_id,
            createdByName=task.created_by_name,
            createdAt=task.created_at,
            updatedAt=task.updated_at,
        )
