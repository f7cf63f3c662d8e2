"""
Tests for TaskService.

Tests cover:
1. Task creation, update, toggle and delete
2. Due date normalization and the ISO output format
3. Filters (today, overdue, completed, active) and sort keys
4. Task statistics
"""
import pytest
from datetime import datetime
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError

from habitlog.constants import Priority, Status, Category
from habitlog.exceptions import ValidationError, StorageError, RecordNotFoundException
from habitlog.models import Task
from habitlog.repositories.task_repository import TaskRepository
from habitlog.schemas import TaskSave
from habitlog.services.task_service import TaskService

NOW = datetime(2024, 3, 10, 12, 0)


@pytest.fixture
def task_service(db_session):
    return TaskService(db_session)


@pytest.fixture
def sample_tasks(task_service, user_id):
    """Four tasks around NOW, one per filter bucket"""
    return {
        "today": task_service.save_task(user_id, TaskSave(
            task="Call the bank", due_date="2024-03-10T18:00:00Z", priority=Priority.LOW
        )),
        "overdue": task_service.save_task(user_id, TaskSave(
            task="File taxes", due_date="2024-03-01", priority=Priority.HIGH, status=Status.IN_PROGRESS
        )),
        "done": task_service.save_task(user_id, TaskSave(
            task="Buy groceries", due_date="2024-03-05", priority=Priority.OPTIONAL,
            status=Status.COMPLETED, category=Category.CHORES, completed=True
        )),
        "later": task_service.save_task(user_id, TaskSave(
            task="Plan trip", due_date="2024-03-20", priority=Priority.MEDIUM, category=Category.IDEAS
        )),
    }


class TestSaveTask:
    """Tests for save_task"""

    def test_create_with_date_only_due_date(self, task_service, user_id):
        created = task_service.save_task(user_id, TaskSave(
            task="Pay rent", due_date="2024-03-01", priority="High",
            status="Not Started", category="Money B"
        ))

        assert created.due_date == "2024-03-01T00:00:00.000Z"
        assert created.priority is Priority.HIGH
        assert created.category is Category.MONEY
        assert created.completed is False

    def test_listed_after_create(self, task_service, user_id):
        created = task_service.save_task(user_id, TaskSave(task="Pay rent", due_date="2024-03-01"))

        listed = task_service.list_tasks(user_id)

        assert [t.id for t in listed] == [created.id]
        assert listed[0].status is Status.NOT_STARTED

    def test_text_is_sanitized(self, task_service, user_id):
        created = task_service.save_task(user_id, TaskSave(task="  Email\x07 Sam  ", due_date="2024-03-01"))

        assert created.task == "Email Sam"

    def test_offset_due_date_stored_as_utc(self, task_service, user_id, db_session):
        task_service.save_task(user_id, TaskSave(task="Standup", due_date="2024-03-01T09:00:00+09:00"))

        assert db_session.query(Task).one().due_date == datetime(2024, 3, 1, 0, 0)

    def test_update_in_place(self, task_service, user_id):
        created = task_service.save_task(user_id, TaskSave(task="Draft", due_date="2024-03-01"))

        updated = task_service.save_task(user_id, TaskSave(
            id=created.id, task="Draft v2", due_date="2024-03-02", status=Status.IN_PROGRESS
        ))

        assert updated.id == created.id
        assert updated.task == "Draft v2"
        assert updated.due_date == "2024-03-02T00:00:00.000Z"
        assert len(task_service.list_tasks(user_id)) == 1

    def test_update_unknown_id(self, task_service, user_id):
        with pytest.raises(RecordNotFoundException):
            task_service.save_task(user_id, TaskSave(id="missing", task="x", due_date="2024-03-01"))

    @pytest.mark.parametrize("fields", [
        {"task": "", "due_date": "2024-03-01", "priority": "High", "status": "Not Started", "category": "Work"},
        {"task": "x", "due_date": "", "priority": "High", "status": "Not Started", "category": "Work"},
        {"task": "x", "due_date": "2024-03-01", "priority": "Urgent", "status": "Not Started", "category": "Work"},
        {"task": "x", "due_date": "2024-03-01", "priority": "High", "status": "Done", "category": "Work"},
        {"task": "x", "due_date": "2024-03-01", "priority": "High", "status": "Not Started", "category": "Fun"},
    ])
    def test_invalid_fields_write_nothing(self, task_service, user_id, db_session, fields):
        with pytest.raises(ValidationError):
            task_service.save_task(user_id, fields)

        assert db_session.query(Task).count() == 0

    @pytest.mark.parametrize("completed", ["false", "true", 0, 1])
    def test_completed_must_be_boolean(self, task_service, user_id, db_session, completed):
        """A string "false" must not be stored as a completed task"""
        with pytest.raises(ValidationError) as exc:
            task_service.save_task(user_id, {
                "task": "Pay rent", "due_date": "2024-03-01", "priority": "High",
                "status": "Not Started", "category": "Money B", "completed": completed
            })

        assert exc.value.field == "completed"
        assert db_session.query(Task).count() == 0

    def test_missing_completed_defaults_to_open(self, task_service, user_id):
        created = task_service.save_task(user_id, {
            "task": "Pay rent", "due_date": "2024-03-01", "priority": "High",
            "status": "Not Started", "category": "Money B"
        })

        assert created.completed is False

    def test_write_failure(self, task_service, user_id):
        with patch.object(TaskRepository, "create", side_effect=SQLAlchemyError("read-only")):
            with pytest.raises(StorageError):
                task_service.save_task(user_id, TaskSave(task="x", due_date="2024-03-01"))


class TestToggleAndDelete:
    """Tests for toggle_task and delete_task"""

    def test_toggle_completes_and_reopens(self, task_service, user_id):
        created = task_service.save_task(user_id, TaskSave(task="Workout", due_date="2024-03-01"))

        done = task_service.toggle_task(user_id, created.id)
        reopened = task_service.toggle_task(user_id, created.id)

        assert (done.completed, done.status) == (True, Status.COMPLETED)
        assert (reopened.completed, reopened.status) == (False, Status.NOT_STARTED)

    def test_toggle_unknown(self, task_service, user_id):
        with pytest.raises(RecordNotFoundException):
            task_service.toggle_task(user_id, "missing")

    def test_delete(self, task_service, user_id):
        created = task_service.save_task(user_id, TaskSave(task="Workout", due_date="2024-03-01"))

        assert task_service.delete_task(user_id, created.id) is True
        assert task_service.list_tasks(user_id) == []
        assert task_service.delete_task(user_id, created.id) is False

    def test_delete_other_users_task(self, task_service, user_id, other_user_id):
        theirs = task_service.save_task(other_user_id, TaskSave(task="Theirs", due_date="2024-03-01"))

        assert task_service.delete_task(user_id, theirs.id) is False
        assert len(task_service.list_tasks(other_user_id)) == 1


class TestListTasks:
    """Tests for filtering and sorting"""

    def test_default_order_is_due_date(self, task_service, user_id, sample_tasks):
        listed = task_service.list_tasks(user_id, now=NOW)

        assert [t.task for t in listed] == ["File taxes", "Buy groceries", "Call the bank", "Plan trip"]

    @pytest.mark.parametrize("task_filter, expected", [
        ("all", {"today", "overdue", "done", "later"}),
        ("today", {"today"}),
        ("overdue", {"overdue"}),
        ("completed", {"done"}),
        ("active", {"today", "overdue", "later"}),
    ])
    def test_filters(self, task_service, user_id, sample_tasks, utc, task_filter, expected):
        listed = task_service.list_tasks(user_id, task_filter=task_filter, now=NOW, tz=utc)

        ids = {t.id for t in listed}
        assert ids == {sample_tasks[key].id for key in expected}

    def test_today_uses_local_calendar(self, task_service, user_id, tokyo, utc):
        """20:00 UTC on the 10th is the morning of the 11th in Tokyo"""
        task = task_service.save_task(user_id, TaskSave(task="Call", due_date="2024-03-10T20:00:00Z"))
        now = datetime(2024, 3, 11, 2, 0)

        assert [t.id for t in task_service.list_tasks(user_id, "today", now=now, tz=tokyo)] == [task.id]
        assert task_service.list_tasks(user_id, "today", now=now, tz=utc) == []

    def test_sort_by_priority(self, task_service, user_id, sample_tasks):
        listed = task_service.list_tasks(user_id, sort_by="priority", now=NOW)

        assert [t.priority for t in listed] == [Priority.HIGH, Priority.MEDIUM, Priority.LOW, Priority.OPTIONAL]

    def test_sort_by_status(self, task_service, user_id, sample_tasks):
        listed = task_service.list_tasks(user_id, sort_by="status", now=NOW)

        assert [t.status.value for t in listed] == sorted(t.status.value for t in listed)
        assert listed[0].status is Status.COMPLETED

    def test_filter_and_sort_combined(self, task_service, user_id, sample_tasks):
        listed = task_service.list_tasks(user_id, task_filter="active", sort_by="priority", now=NOW)

        assert [t.task for t in listed] == ["File taxes", "Plan trip", "Call the bank"]

    def test_unknown_filter(self, task_service, user_id):
        with pytest.raises(ValidationError):
            task_service.list_tasks(user_id, task_filter="someday")

    def test_unknown_sort_key(self, task_service, user_id):
        with pytest.raises(ValidationError):
            task_service.list_tasks(user_id, sort_by="created_at")

    def test_read_failure_gives_empty_list(self, task_service, user_id, sample_tasks):
        with patch.object(TaskRepository, "get_all", side_effect=SQLAlchemyError("offline")):
            assert task_service.list_tasks(user_id) == []


class TestTaskStats:
    """Tests for task_stats"""

    def test_counts(self, task_service, user_id, sample_tasks, utc):
        stats = task_service.task_stats(user_id, now=NOW, tz=utc)

        assert stats.today == 1
        assert stats.overdue == 1
        assert stats.completed == 1
        assert stats.total == 4
        assert stats.progress_percentage == 25.0

    def test_empty(self, task_service, user_id):
        stats = task_service.task_stats(user_id, now=NOW)

        assert stats.total == 0
        assert stats.progress_percentage == 0.0
