"""
Habit management service.
Handles habit CRUD, the cascade from a habit to its completions, and the
per-day completion upsert.
"""
import logging
from datetime import tzinfo
from typing import Any, List, Optional
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from habitlog.exceptions import StorageError, RecordNotFoundException
from habitlog.models import Habit, HabitCompletion
from habitlog.repositories.habit_repository import HabitRepository, HabitCompletionRepository
from habitlog.schemas import HabitResponse, CompletionResponse
from habitlog.services.date_service import DateService
from habitlog.validation import (
    validate_user_id, validate_record_id, validate_habit_name, validate_icon,
    validate_time, validate_duration, validate_day, validate_month, validate_completed,
)

logger = logging.getLogger("habitlog.habits")


class HabitService:
    """Service for habits and their daily completions"""

    def __init__(self, db: Session):
        self.db = db
        self.habit_repo = HabitRepository()
        self.completion_repo = HabitCompletionRepository()
        self.date_service = DateService()

    def list_habits(self, user_id: str) -> List[HabitResponse]:
        """Get all habits of a user; an unreadable store gives an empty list"""
        validate_user_id(user_id)
        try:
            habits = self.habit_repo.get_all(self.db, user_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error getting habits for {user_id}: {e}")
            return []
        return [HabitResponse.model_validate(habit) for habit in habits]

    def save_habit(self, user_id: str, habit: Any) -> HabitResponse:
        """
        Create or update a habit.

        Args:
            user_id: Owner of the habit
            habit: HabitSave or mapping; an "id" selects update over insert

        Returns:
            The persisted habit including its id

        Raises:
            ValidationError: On any invalid field, before touching storage
            RecordNotFoundException: When updating an id the user does not own
            StorageError: When the write fails
        """
        validate_user_id(user_id)
        data = habit.model_dump() if isinstance(habit, BaseModel) else dict(habit)

        fields = {
            "name": validate_habit_name(data.get("name")),
            "icon": validate_icon(data.get("icon")),
            "start_time": validate_time(data.get("start_time"), "start_time"),
            "end_time": validate_time(data.get("end_time"), "end_time"),
            "duration": validate_duration(data.get("duration")),
        }
        habit_id = data.get("id")

        try:
            if habit_id:
                record = self.habit_repo.get_by_id(self.db, user_id, habit_id)
                if not record:
                    raise RecordNotFoundException("Habit", habit_id)
                for key, value in fields.items():
                    setattr(record, key, value)
                record = self.habit_repo.update(self.db, record)
                logger.info(f"Updated habit {habit_id} for {user_id}")
            else:
                record = self.habit_repo.create(self.db, Habit(user_id=user_id, **fields))
                logger.info(f"Created habit {record.id} for {user_id}")
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error saving habit for {user_id}: {e}")
            raise StorageError("save habit", str(e)) from e

        return HabitResponse.model_validate(record)

    def delete_habit(self, user_id: str, habit_id: str) -> bool:
        """
        Delete a habit, then every completion that references it.

        The two steps are separate writes. If a completion delete fails the
        habit stays deleted and StorageError is raised.

        Returns:
            True if the habit existed
        """
        validate_user_id(user_id)
        validate_record_id(habit_id, "Habit")

        try:
            habit = self.habit_repo.get_by_id(self.db, user_id, habit_id)
            if habit:
                self.habit_repo.delete(self.db, habit)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error deleting habit {habit_id}: {e}")
            raise StorageError("delete habit", str(e)) from e

        deleted = 0
        try:
            for completion in self.completion_repo.get_by_habit(self.db, user_id, habit_id):
                self.completion_repo.delete(self.db, completion)
                deleted += 1
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(
                f"Habit {habit_id} deleted but removing its completions failed "
                f"after {deleted}: {e}"
            )
            raise StorageError("delete habit completions", str(e)) from e

        logger.info(f"Deleted habit {habit_id} and {deleted} completion(s)")
        return habit is not None

    def list_habit_completions(
        self,
        user_id: str,
        year: int,
        month: int,
        tz: Optional[tzinfo] = None
    ) -> List[CompletionResponse]:
        """
        Get completions recorded in a month of the local calendar.

        Dates come back as yyyy-MM-dd strings. An unreadable store gives an
        empty list.
        """
        validate_user_id(user_id)
        validate_month(year, month)
        tz = tz or self.date_service.get_local_timezone()
        start, end = self.date_service.local_month_range(year, month, tz)

        try:
            completions = self.completion_repo.get_in_range(
                self.db,
                user_id,
                self.date_service.to_storage(start),
                self.date_service.to_storage(end)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error getting habit completions for {user_id}: {e}")
            return []

        return [self._completion_response(c, tz) for c in completions]

    def set_habit_completion(
        self,
        user_id: str,
        habit_id: str,
        day: Any,
        completed: bool,
        tz: Optional[tzinfo] = None
    ) -> CompletionResponse:
        """
        Record whether a habit was done on a day.

        The day is reduced to local midnight before both the lookup and the
        write, so repeated calls for the same day hit the same record.
        """
        validate_user_id(user_id)
        validate_record_id(habit_id, "Habit")
        tz = tz or self.date_service.get_local_timezone()
        target_day = validate_day(day, tz=tz)
        validate_completed(completed)

        day_start = self.date_service.to_storage(
            self.date_service.local_midnight(target_day, tz)
        )

        for attempt in (1, 2):
            try:
                record = self._write_completion(user_id, habit_id, day_start, completed)
                return self._completion_response(record, tz)
            except IntegrityError as e:
                self.db.rollback()
                if attempt == 2:
                    logger.error(f"Error saving habit completion for {habit_id}: {e}")
                    raise StorageError("save habit completion", str(e)) from e
                # Another writer inserted the same (habit, day) first
                logger.warning(f"Completion for {habit_id} on {target_day} already exists, retrying as update")
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error saving habit completion for {habit_id}: {e}")
                raise StorageError("save habit completion", str(e)) from e

    def _write_completion(
        self,
        user_id: str,
        habit_id: str,
        day_start,
        completed: bool
    ) -> HabitCompletion:
        existing = self.completion_repo.get_for_day(self.db, user_id, habit_id, day_start)
        if existing:
            existing.completed = completed
            return self.completion_repo.update(self.db, existing)
        return self.completion_repo.create(
            self.db,
            HabitCompletion(user_id=user_id, habit_id=habit_id, date=day_start, completed=completed)
        )

    def _completion_response(self, completion: HabitCompletion, tz: tzinfo) -> CompletionResponse:
        local = self.date_service.from_storage(completion.date, tz)
        return CompletionResponse(
            id=completion.id,
            habit_id=completion.habit_id,
            date=self.date_service.to_day_string(local),
            completed=completion.completed
        )
