"""
Daily progress repository - Data access layer for DailyProgress model.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session

from habitlog.models import DailyProgress


class DailyProgressRepository:
    """Repository for DailyProgress data access"""

    @staticmethod
    def get_by_date(db: Session, user_id: str, day: datetime) -> Optional[DailyProgress]:
        """Get the entry stored at exactly this timestamp"""
        return db.query(DailyProgress).filter(
            and_(DailyProgress.user_id == user_id, DailyProgress.date == day)
        ).first()

    @staticmethod
    def get_in_range(
        db: Session,
        user_id: str,
        start_time: datetime,
        end_time: datetime
    ) -> List[DailyProgress]:
        """Get entries with start_time <= date <= end_time"""
        return db.query(DailyProgress).filter(
            and_(
                DailyProgress.user_id == user_id,
                DailyProgress.date >= start_time,
                DailyProgress.date <= end_time
            )
        ).order_by(DailyProgress.date).all()

    @staticmethod
    def create(db: Session, progress: DailyProgress) -> DailyProgress:
        db.add(progress)
        db.commit()
        db.refresh(progress)
        return progress

    @staticmethod
    def update(db: Session, progress: DailyProgress) -> DailyProgress:
        db.commit()
        db.refresh(progress)
        return progress
