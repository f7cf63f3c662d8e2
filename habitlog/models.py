from sqlalchemy import Column, String, Boolean, DateTime, Integer, UniqueConstraint
from uuid import uuid4

from habitlog.infrastructure.database import Base
from habitlog.services.date_service import utcnow


def generate_id() -> str:
    return uuid4().hex


# Every table is partitioned by user_id; all timestamps are naive UTC.

class Habit(Base):
    __tablename__ = "habits"

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    icon = Column(String(10), nullable=False)
    start_time = Column(String(5), nullable=False, default="")  # HH:MM or ""
    end_time = Column(String(5), nullable=False, default="")
    duration = Column(String(16), nullable=False, default="")   # hours as text, "" if unset
    created_at = Column(DateTime, default=utcnow)


class HabitCompletion(Base):
    __tablename__ = "habit_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "habit_id", "date", name="uq_completion_habit_date"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(128), nullable=False, index=True)
    habit_id = Column(String(32), nullable=False, index=True)
    date = Column(DateTime, nullable=False, index=True)  # local midnight, stored as UTC
    completed = Column(Boolean, nullable=False, default=False)


class DailyProgress(Base):
    __tablename__ = "daily_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_progress_date"),
    )

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(128), nullable=False, index=True)
    date = Column(DateTime, nullable=False, index=True)  # UTC midnight of the calendar day
    mood = Column(Integer, nullable=True)        # 1-10
    motivation = Column(Integer, nullable=True)  # 1-10


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(32), primary_key=True, default=generate_id)
    user_id = Column(String(128), nullable=False, index=True)
    task = Column(String(500), nullable=False)
    due_date = Column(DateTime, nullable=False)
    priority = Column(String(16), nullable=False)  # High, Medium, Low, Optional
    status = Column(String(16), nullable=False)    # Not Started, In Progress, Completed
    category = Column(String(16), nullable=False)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)
