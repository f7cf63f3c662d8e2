"""
Habit repository - Data access layer for Habit and HabitCompletion models.
All queries are scoped to one user's partition.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import and_
from sqlalchemy.orm import Session

from habitlog.models import Habit, HabitCompletion


class HabitRepository:
    """Repository for Habit data access"""

    @staticmethod
    def get_by_id(db: Session, user_id: str, habit_id: str) -> Optional[Habit]:
        """Get habit by ID within the user's partition"""
        return db.query(Habit).filter(
            and_(Habit.user_id == user_id, Habit.id == habit_id)
        ).first()

    @staticmethod
    def get_all(db: Session, user_id: str) -> List[Habit]:
        """Get all habits of a user, oldest first"""
        return db.query(Habit).filter(
            Habit.user_id == user_id
        ).order_by(Habit.created_at).all()

    @staticmethod
    def create(db: Session, habit: Habit) -> Habit:
        db.add(habit)
        db.commit()
        db.refresh(habit)
        return habit

    @staticmethod
    def update(db: Session, habit: Habit) -> Habit:
        db.commit()
        db.refresh(habit)
        return habit

    @staticmethod
    def delete(db: Session, habit: Habit) -> None:
        db.delete(habit)
        db.commit()


class HabitCompletionRepository:
    """Repository for HabitCompletion data access"""

    @staticmethod
    def get_for_day(
        db: Session,
        user_id: str,
        habit_id: str,
        day_start: datetime
    ) -> Optional[HabitCompletion]:
        """Get the completion of a habit stored at exactly day_start"""
        return db.query(HabitCompletion).filter(
            and_(
                HabitCompletion.user_id == user_id,
                HabitCompletion.habit_id == habit_id,
                HabitCompletion.date == day_start
            )
        ).first()

    @staticmethod
    def get_in_range(
        db: Session,
        user_id: str,
        start_time: datetime,
        end_time: datetime
    ) -> List[HabitCompletion]:
        """Get completions with start_time <= date <= end_time"""
        return db.query(HabitCompletion).filter(
            and_(
                HabitCompletion.user_id == user_id,
                HabitCompletion.date >= start_time,
                HabitCompletion.date <= end_time
            )
        ).order_by(HabitCompletion.date).all()

    @staticmethod
    def get_by_habit(db: Session, user_id: str, habit_id: str) -> List[HabitCompletion]:
        """Get every completion referencing a habit"""
        return db.query(HabitCompletion).filter(
            and_(
                HabitCompletion.user_id == user_id,
                HabitCompletion.habit_id == habit_id
            )
        ).all()

    @staticmethod
    def create(db: Session, completion: HabitCompletion) -> HabitCompletion:
        db.add(completion)
        db.commit()
        db.refresh(completion)
        return completion

    @staticmethod
    def update(db: Session, completion: HabitCompletion) -> HabitCompletion:
        db.commit()
        db.refresh(completion)
        return completion

    @staticmethod
    def delete(db: Session, completion: HabitCompletion) -> None:
        db.delete(completion)
        db.commit()
