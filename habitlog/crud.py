"""
Persistence gateway.

Module-level entry points over the services, each taking the session first.
Every operation validates the user id before touching storage.
"""
from datetime import datetime, tzinfo
from sqlalchemy.orm import Session
from typing import Any, List, Optional

from habitlog.schemas import (
    HabitResponse, CompletionResponse, DailyProgressResponse,
    TaskResponse, TaskStats, HabitMonthStats,
)
from habitlog.services.habit_service import HabitService
from habitlog.services.progress_service import ProgressService
from habitlog.services.stats_service import StatsService
from habitlog.services.task_service import TaskService


# ===== HABITS =====

def list_habits(db: Session, user_id: str) -> List[HabitResponse]:
    return HabitService(db).list_habits(user_id)

def save_habit(db: Session, user_id: str, habit: Any) -> HabitResponse:
    return HabitService(db).save_habit(user_id, habit)

def delete_habit(db: Session, user_id: str, habit_id: str) -> bool:
    return HabitService(db).delete_habit(user_id, habit_id)


# ===== HABIT COMPLETIONS =====

def list_habit_completions(
    db: Session, user_id: str, year: int, month: int, tz: Optional[tzinfo] = None
) -> List[CompletionResponse]:
    return HabitService(db).list_habit_completions(user_id, year, month, tz)

def set_habit_completion(
    db: Session, user_id: str, habit_id: str, day: Any, completed: bool, tz: Optional[tzinfo] = None
) -> CompletionResponse:
    return HabitService(db).set_habit_completion(user_id, habit_id, day, completed, tz)


# ===== DAILY PROGRESS =====

def list_daily_progress(
    db: Session, user_id: str, year: int, month: int, tz: Optional[tzinfo] = None
) -> List[DailyProgressResponse]:
    return ProgressService(db).list_daily_progress(user_id, year, month, tz)

def set_daily_progress(
    db: Session, user_id: str, day: Any, mood: Any = None, motivation: Any = None,
    tz: Optional[tzinfo] = None
) -> DailyProgressResponse:
    return ProgressService(db).set_daily_progress(user_id, day, mood, motivation, tz)


# ===== TASKS =====

def list_tasks(
    db: Session, user_id: str, task_filter: Optional[str] = None, sort_by: Optional[str] = None,
    now: Optional[datetime] = None, tz: Optional[tzinfo] = None
) -> List[TaskResponse]:
    return TaskService(db).list_tasks(user_id, task_filter, sort_by, now, tz)

def save_task(db: Session, user_id: str, task: Any) -> TaskResponse:
    return TaskService(db).save_task(user_id, task)

def toggle_task(db: Session, user_id: str, task_id: str) -> TaskResponse:
    return TaskService(db).toggle_task(user_id, task_id)

def delete_task(db: Session, user_id: str, task_id: str) -> bool:
    return TaskService(db).delete_task(user_id, task_id)


# ===== STATISTICS =====

def task_stats(
    db: Session, user_id: str, now: Optional[datetime] = None, tz: Optional[tzinfo] = None
) -> TaskStats:
    return TaskService(db).task_stats(user_id, now, tz)

def habit_month_stats(
    db: Session, user_id: str, year: int, month: int, tz: Optional[tzinfo] = None
) -> HabitMonthStats:
    return StatsService(db).habit_month_stats(user_id, year, month, tz)
