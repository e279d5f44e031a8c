"""Task repository"""

from datetime import datetime
from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ...models import FamilyChild
from ...models_calendar import Task

# Highest first when ordering
PRIORITY_RANK = case(
    {"urgent": 4, "high": 3, "medium": 2, "low": 1},
    value=Task.priority,
    else_=0,
)


class TaskRepository:
    """Repository for task database operations"""

    @staticmethod
    def get_tasks(
        db: Session,
        family_id: str,
        status: Optional[str] = None,
        assigned_to: Optional[str] = None,
        category: Optional[str] = None,
    ) -> list[Task]:
        query = db.query(Task).filter(Task.family_id == family_id)
        if status:
            query = query.filter(Task.status == status)
        if assigned_to:
            query = query.filter(Task.assigned_to == assigned_to)
        if category:
            query = query.filter(Task.category == category)
        return query.order_by(
            Task.due_date.is_(None), Task.due_date.asc(), PRIORITY_RANK.desc(), Task.created_at.desc()
        ).all()

    @staticmethod
    def get_task(db: Session, family_id: str, task_id: str) -> Optional[Task]:
        return db.query(Task).filter(Task.id == task_id, Task.family_id == family_id).first()

    @staticmethod
    def child_exists(db: Session, family_id: str, child_id: str) -> bool:
        return (
            db.query(FamilyChild.id)
            .filter(FamilyChild.id == child_id, FamilyChild.family_id == family_id)
            .first()
            is not None
        )

    @staticmethod
    def get_stats(db: Session, family_id: str, now: datetime) -> dict:
        counts = dict(
            db.query(Task.status, func.count(Task.id))
            .filter(Task.family_id == family_id)
            .group_by(Task.status)
            .all()
        )
        overdue = (
            db.query(func.count(Task.id))
            .filter(
                Task.family_id == family_id,
                Task.status.in_(("pending", "in_progress")),
                Task.due_date.isnot(None),
                Task.due_date < now,
            )
            .scalar()
        )
        return {
            "total": sum(counts.values()),
            "pending": counts.get("pending", 0),
            "inProgress": counts.get("in_progress", 0),
            "completed": counts.get("completed", 0),
            "overdue": overdue or 0,
        }
