"""Task service - Business logic for shared family tasks"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import NotFound, ValidationFailed
from ...membership import get_sorted_member_ids, resolve_target_uids
from ...models import User
from ...models_calendar import Task
from ...realtime import emit_to_family
from ...services.notification_service import notify_users
from ...services.reminder_service import upsert_task_reminder
from ...utils.dates import utcnow
from ...utils.helpers import display_name
from .repository import TaskRepository
from .schemas import TaskCreate, TaskResponse, TaskUpdate

logger = logging.getLogger(__name__)


class TaskService:
    """Service layer for tasks"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TaskRepository()

    def _check_child(self, family_id: str, child_id: Optional[str]) -> Optional[str]:
        if child_id and not self.repo.child_exists(self.db, family_id, child_id):
            raise ValidationFailed("Child not found", "child-not-found")
        return child_id

    def _sync_reminder(self, task: Task) -> list[str]:
        target_uids = resolve_target_uids(get_sorted_member_ids(self.db, task.family_id), task.assigned_to)
        upsert_task_reminder(self.db, task, target_uids)
        return target_uids

    async def _broadcast(self, event: str, task: Task, exclude_user_id: Optional[str] = None) -> None:
        await emit_to_family(
            task.family_id, event, TaskResponse.from_model(task).model_dump(), exclude_user_id
        )

    def get_tasks(
        self,
        family_id: str,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        category: Optional[str] = None,
    ) -> list[Task]:
        return self.repo.get_tasks(self.db, family_id, status, assigned_to, category)

    def get_task(self, family_id: str, task_id: str) -> Task:
        task = self.repo.get_task(self.db, family_id, task_id)
        if not task:
            raise NotFound("Task not found", "task-not-found")
        return task

    def get_stats(self, family_id: str) -> dict:
        return self.repo.get_stats(self.db, family_id, utcnow())

    async def create_task(self, family_id: str, data: TaskCreate, user: User) -> Task:
        creator_name = display_name(user.full_name, user.email)
        task = Task(
            family_id=family_id,
            title=data.title,
            description=data.description,
            due_date=data.dueDate,
            priority=data.priority,
            status="pending",
            assigned_to=data.assignedTo,
            category=data.category,
            child_id=self._check_child(family_id, data.childId),
            reminder_minutes=data.reminderMinutes,
            created_by_id=user.id,
            created_by_name=creator_name,
        )
        self.db.add(task)
        self.db.flush()
        target_uids = self._sync_reminder(task)
        self.db.commit()
        self.db.refresh(task)
        logger.info(f"✅ Task created: {task.id} in family {family_id}")

        await self._broadcast("task:created", task, user.id)
        notify_users(
            self.db,
            [uid for uid in target_uids if uid != user.id],
            "task_created",
            "New task",
            f"{creator_name} added: {task.title}",
            family_id=family_id,
            data={"taskId": task.id},
        )
        return task

    async def update_task(self, family_id: str, task_id: str, data: TaskUpdate, user: User) -> Task:
        task = self.get_task(family_id, task_id)
        fields = data.model_fields_set

        if data.title is not None:
            task.title = data.title
        if "description" in fields:
            task.description = data.description
        if "dueDate" in fields:
            task.due_date = data.dueDate
        if data.priority is not None:
            task.priority = data.priority
        if data.assignedTo is not None:
            task.assigned_to = data.assignedTo
        if data.category is not None:
            task.category = data.category
        if "childId" in fields:
            task.child_id = self._check_child(family_id, data.childId)
        if "reminderMinutes" in fields:
            task.reminder_minutes = data.reminderMinutes

        self._sync_reminder(task)
        self.db.commit()
        self.db.refresh(task)
        logger.info(f"✏️ Task updated: {task.id} by {user.id}")

        await self._broadcast("task:updated", task)
        return task

    async def update_status(self, family_id: str, task_id: str, status: str, user: User) -> Task:
        task = self.get_task(family_id, task_id)
        task.status = status
        if status == "completed":
            task.completed_at = utcnow()
            task.completed_by_id = user.id
        else:
            task.completed_at = None
            task.completed_by_id = None

        self._sync_reminder(task)
        self.db.commit()
        self.db.refresh(task)
        logger.info(f"✅ Task {task.id} marked {status} by {user.id}")

        await self._broadcast("task:updated", task)
        if status == "completed" and task.created_by_id != user.id:
            notify_users(
                self.db,
                [task.created_by_id],
                "task_completed",
                "Task completed",
                f"{display_name(user.full_name, user.email)} completed: {task.title}",
                family_id=family_id,
                data={"taskId": task.id},
            )
        return task

    async def delete_task(self, family_id: str, task_id: str) -> None:
        """Deletes the task together with its reminder"""
        task = self.get_task(family_id, task_id)
        self.db.delete(task)
        self.db.commit()
        logger.info(f"🗑️ Task deleted: {task_id}")
        await emit_to_family(family_id, "task:deleted", {"id": task_id})
