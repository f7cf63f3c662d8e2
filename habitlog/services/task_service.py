"""
Task management service.
Handles to-do CRUD, completion toggling, list filtering and sorting.
"""
import logging
from datetime import datetime, tzinfo
from typing import Any, List, Optional
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from habitlog.constants import (
    Priority, Status, Category, PRIORITY_ORDER,
    TASK_FILTERS, TASK_FILTER_ALL, TASK_FILTER_TODAY, TASK_FILTER_OVERDUE,
    TASK_FILTER_COMPLETED, TASK_FILTER_ACTIVE,
    TASK_SORT_KEYS, TASK_SORT_DUE_DATE, TASK_SORT_PRIORITY, TASK_SORT_STATUS,
)
from habitlog.exceptions import StorageError, RecordNotFoundException, ValidationError
from habitlog.models import Task
from habitlog.repositories.task_repository import TaskRepository
from habitlog.schemas import TaskResponse, TaskStats
from habitlog.services.date_service import DateService, utcnow
from habitlog.validation import (
    validate_user_id, validate_record_id, validate_task_text, validate_priority,
    validate_status, validate_category, validate_date, validate_completed,
)

logger = logging.getLogger("habitlog.tasks")


class TaskService:
    """Service for the to-do list"""

    def __init__(self, db: Session):
        self.db = db
        self.task_repo = TaskRepository()
        self.date_service = DateService()

    def list_tasks(
        self,
        user_id: str,
        task_filter: Optional[str] = None,
        sort_by: Optional[str] = None,
        now: Optional[datetime] = None,
        tz: Optional[tzinfo] = None
    ) -> List[TaskResponse]:
        """
        Get a user's tasks, optionally filtered and sorted.

        Args:
            user_id: Owner of the tasks
            task_filter: all, today, overdue, completed or active
            sort_by: due_date, priority or status (default: stored order by due date)
            now: Naive UTC reference time for today/overdue, defaults to the clock
            tz: Local calendar for "today"

        Returns:
            Tasks with due_date as ISO-8601 strings; empty if the store is unreadable
        """
        validate_user_id(user_id)
        if task_filter is not None and task_filter not in TASK_FILTERS:
            raise ValidationError("filter", f"Filter must be one of: {', '.join(TASK_FILTERS)}")
        if sort_by is not None and sort_by not in TASK_SORT_KEYS:
            raise ValidationError("sort_by", f"Sort key must be one of: {', '.join(TASK_SORT_KEYS)}")

        try:
            tasks = self.task_repo.get_all(self.db, user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error getting tasks for {user_id}: {e}")
            return []

        now = now or utcnow()
        tz = tz or self.date_service.get_local_timezone()
        if task_filter and task_filter != TASK_FILTER_ALL:
            tasks = [t for t in tasks if self._matches(t, task_filter, now, tz)]
        if sort_by:
            tasks = self._sorted(tasks, sort_by)

        return [self._to_response(task) for task in tasks]

    def save_task(self, user_id: str, task: Any) -> TaskResponse:
        """
        Create or update a task.

        Raises:
            ValidationError: On any invalid field, before touching storage
            RecordNotFoundException: When updating an id the user does not own
            StorageError: When the write fails
        """
        validate_user_id(user_id)
        data = task.model_dump() if isinstance(task, BaseModel) else dict(task)

        fields = {
            "task": validate_task_text(data.get("task")),
            "priority": validate_priority(data.get("priority")).value,
            "status": validate_status(data.get("status")).value,
            "category": validate_category(data.get("category")).value,
            "due_date": self.date_service.to_storage(validate_date(data.get("due_date"), "due_date")),
            "completed": validate_completed(data.get("completed"), default=False),
        }
        task_id = data.get("id")

        try:
            if task_id:
                record = self.task_repo.get_by_id(self.db, user_id, task_id)
                if not record:
                    raise RecordNotFoundException("Task", task_id)
                for key, value in fields.items():
                    setattr(record, key, value)
                record = self.task_repo.update(self.db, record)
                logger.info(f"Updated task {task_id} for {user_id}")
            else:
                record = self.task_repo.create(self.db, Task(user_id=user_id, **fields))
                logger.info(f"Created task {record.id} for {user_id}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving task for {user_id}: {e}")
            raise StorageError("save task", str(e)) from e

        return self._to_response(record)

    def toggle_task(self, user_id: str, task_id: str) -> TaskResponse:
        """Flip completion; completing sets Completed, reopening sets Not Started"""
        validate_user_id(user_id)
        validate_record_id(task_id, "Task")

        try:
            record = self.task_repo.get_by_id(self.db, user_id, task_id)
            if not record:
                raise RecordNotFoundException("Task", task_id)
            record.completed = not record.completed
            record.status = (Status.COMPLETED if record.completed else Status.NOT_STARTED).value
            record = self.task_repo.update(self.db, record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error toggling task {task_id}: {e}")
            raise StorageError("toggle task", str(e)) from e

        return self._to_response(record)

    def delete_task(self, user_id: str, task_id: str) -> bool:
        """Delete a task; returns False if it did not exist"""
        validate_user_id(user_id)
        validate_record_id(task_id, "Task")

        try:
            record = self.task_repo.get_by_id(self.db, user_id, task_id)
            if not record:
                return False
            self.task_repo.delete(self.db, record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting task {task_id}: {e}")
            raise StorageError("delete task", str(e)) from e

        logger.info(f"Deleted task {task_id} for {user_id}")
        return True

    def task_stats(
        self,
        user_id: str,
        now: Optional[datetime] = None,
        tz: Optional[tzinfo] = None
    ) -> TaskStats:
        """Count today's, overdue and completed tasks"""
        validate_user_id(user_id)
        now = now or utcnow()
        tz = tz or self.date_service.get_local_timezone()

        try:
            tasks = self.task_repo.get_all(self.db, user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error getting tasks for {user_id}: {e}")
            tasks = []

        today = [t for t in tasks if self._matches(t, TASK_FILTER_TODAY, now, tz) and not t.completed]
        overdue = [t for t in tasks if self._matches(t, TASK_FILTER_OVERDUE, now, tz)]
        completed = [t for t in tasks if t.completed]
        total = len(tasks)

        return TaskStats(
            today=len(today),
            overdue=len(overdue),
            completed=len(completed),
            total=total,
            progress_percentage=(len(completed) / total * 100) if total else 0.0
        )

    def _matches(self, task: Task, task_filter: str, now: datetime, tz: tzinfo) -> bool:
        if task_filter == TASK_FILTER_TODAY:
            due_day = self.date_service.from_storage(task.due_date, tz).date()
            return due_day == self.date_service.from_storage(now, tz).date()
        if task_filter == TASK_FILTER_OVERDUE:
            return task.due_date < now and not task.completed
        if task_filter == TASK_FILTER_COMPLETED:
            return task.completed
        if task_filter == TASK_FILTER_ACTIVE:
            return not task.completed
        return True

    @staticmethod
    def _sorted(tasks: List[Task], sort_by: str) -> List[Task]:
        if sort_by == TASK_SORT_PRIORITY:
            return sorted(tasks, key=lambda t: PRIORITY_ORDER[Priority(t.priority)])
        if sort_by == TASK_SORT_STATUS:
            return sorted(tasks, key=lambda t: t.status)
        if sort_by == TASK_SORT_DUE_DATE:
            return sorted(tasks, key=lambda t: t.due_date)
        return list(tasks)

    def _to_response(self, task: Task) -> TaskResponse:
        return TaskResponse(
            id=task.id,
            task=task.task,
            due_date=self.date_service.to_iso_string(task.due_date),
            priority=Priority(task.priority),
            status=Status(task.status),
            category=Category(task.category),
            completed=task.completed,
            created_at=task.created_at
        )
