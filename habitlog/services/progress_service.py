"""
Daily progress service.
Stores one mood/motivation entry per user and calendar day.

Days are written at UTC midnight of the chosen calendar day and read back in
the local calendar. East of UTC the day round-trips unchanged; west of UTC the
stored midnight falls on the previous local day.
"""
import logging
from datetime import datetime, tzinfo
from typing import Any, List, Optional
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from habitlog.exceptions import StorageError
from habitlog.models import DailyProgress
from habitlog.repositories.progress_repository import DailyProgressRepository
from habitlog.schemas import DailyProgressResponse
from habitlog.services.date_service import DateService
from habitlog.validation import (
    validate_user_id, validate_day, validate_mental_state, validate_month,
)

logger = logging.getLogger("habitlog.progress")


class ProgressService:
    """Service for daily mood and motivation ratings"""

    def __init__(self, db: Session):
        self.db = db
        self.progress_repo = DailyProgressRepository()
        self.date_service = DateService()

    def list_daily_progress(
        self,
        user_id: str,
        year: int,
        month: int,
        tz: Optional[tzinfo] = None
    ) -> List[DailyProgressResponse]:
        """Get entries within a UTC calendar month, dated in the local calendar"""
        validate_user_id(user_id)
        validate_month(year, month)
        tz = tz or self.date_service.get_local_timezone()
        start, end = self.date_service.utc_month_range(year, month)

        try:
            entries = self.progress_repo.get_in_range(
                self.db,
                user_id,
                self.date_service.to_storage(start),
                self.date_service.to_storage(end)
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Error getting daily progress for {user_id}: {e}")
            return []

        return [self._to_response(entry, tz) for entry in entries]

    def set_daily_progress(
        self,
        user_id: str,
        day: Any,
        mood: Any = None,
        motivation: Any = None,
        tz: Optional[tzinfo] = None
    ) -> DailyProgressResponse:
        """
        Create or replace the ratings for a day.

        Mood and motivation are validated independently; either may be None.
        """
        validate_user_id(user_id)
        tz = tz or self.date_service.get_local_timezone()
        target_day = validate_day(day, tz=tz)
        validated_mood = validate_mental_state(mood, "Mood")
        validated_motivation = validate_mental_state(motivation, "Motivation")

        stored_day = self.date_service.to_storage(self.date_service.utc_midnight(target_day, tz))

        for attempt in (1, 2):
            try:
                entry = self._write_progress(user_id, stored_day, validated_mood, validated_motivation)
                logger.info(f"Saved daily progress {entry.id} for {target_day}")
                return self._to_response(entry, tz)
            except IntegrityError as e:
                self.db.rollback()
                if attempt == 2:
                    logger.error(f"Error saving daily progress for {target_day}: {e}")
                    raise StorageError("save daily progress", str(e)) from e
                logger.warning(f"Progress for {target_day} already exists, retrying as update")
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Error saving daily progress for {target_day}: {e}")
                raise StorageError("save daily progress", str(e)) from e

    def _write_progress(
        self,
        user_id: str,
        stored_day: datetime,
        mood: Optional[int],
        motivation: Optional[int]
    ) -> DailyProgress:
        existing = self.progress_repo.get_by_date(self.db, user_id, stored_day)
        if existing:
            existing.mood = mood
            existing.motivation = motivation
            return self.progress_repo.update(self.db, existing)
        return self.progress_repo.create(
            self.db,
            DailyProgress(user_id=user_id, date=stored_day, mood=mood, motivation=motivation)
        )

    def _to_response(self, entry: DailyProgress, tz: tzinfo) -> DailyProgressResponse:
        local = self.date_service.from_storage(entry.date, tz)
        return DailyProgressResponse(
            id=entry.id,
            date=self.date_service.to_day_string(local),
            mood=entry.mood,
            motivation=entry.motivation
        )
