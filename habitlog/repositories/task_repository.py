"""
Task repository - Data access layer for Task model.
Handles all database queries related to to-do items.
"""
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session

from habitlog.models import Task


class TaskRepository:
    """Repository for Task data access"""

    @staticmethod
    def get_by_id(db: Session, user_id: str, task_id: str) -> Optional[Task]:
        """Get task by ID within the user's partition"""
        return db.query(Task).filter(
            and_(Task.user_id == user_id, Task.id == task_id)
        ).first()

    @staticmethod
    def get_all(db: Session, user_id: str) -> List[Task]:
        """Get all tasks of a user ordered by due date"""
        return db.query(Task).filter(
            Task.user_id == user_id
        ).order_by(Task.due_date).all()

    @staticmethod
    def create(db: Session, task: Task) -> Task:
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def update(db: Session, task: Task) -> Task:
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete(db: Session, task: Task) -> None:
        db.delete(task)
        db.commit()
