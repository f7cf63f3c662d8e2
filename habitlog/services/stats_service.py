"""
Monthly habit statistics.
Builds the numbers behind the month view: per-habit counts, per-day progress
and the mental state series.
"""
from datetime import tzinfo
from typing import Optional
from sqlalchemy.orm import Session

from habitlog.schemas import HabitMonthStats, HabitMonthStat, DayStat, MentalStatePoint
from habitlog.services.date_service import DateService
from habitlog.services.habit_service import HabitService
from habitlog.services.progress_service import ProgressService
from habitlog.validation import validate_user_id, validate_month


class StatsService:
    """Service for month-level aggregates"""

    def __init__(self, db: Session):
        self.db = db
        self.habit_service = HabitService(db)
        self.progress_service = ProgressService(db)
        self.date_service = DateService()

    def habit_month_stats(
        self,
        user_id: str,
        year: int,
        month: int,
        tz: Optional[tzinfo] = None
    ) -> HabitMonthStats:
        """
        Aggregate a month of habit completions and ratings.

        Reads go through the gateway services, so an unreadable store yields
        zeroed statistics rather than an error.
        """
        validate_user_id(user_id)
        validate_month(year, month)
        tz = tz or self.date_service.get_local_timezone()

        habits = self.habit_service.list_habits(user_id)
        completions = self.habit_service.list_habit_completions(user_id, year, month, tz)
        progress = self.progress_service.list_daily_progress(user_id, year, month, tz)

        done = {(c.habit_id, c.date) for c in completions if c.completed}
        ratings = {p.date: p for p in progress}
        day_keys = [self.date_service.to_day_string(day) for day in self.date_service.month_days(year, month)]
        total_habits = len(habits)

        habit_stats = [
            HabitMonthStat(
                habit_id=habit.id,
                name=habit.name,
                icon=habit.icon,
                count=sum(1 for key in day_keys if (habit.id, key) in done),
                goal=len(day_keys)
            )
            for habit in habits
        ]
        completed_count = sum(stat.count for stat in habit_stats)
        total_possible = total_habits * len(day_keys)

        day_stats = []
        mental_state = []
        for key in day_keys:
            done_today = sum(1 for habit in habits if (habit.id, key) in done)
            day_stats.append(DayStat(
                date=key,
                done=done_today,
                not_done=total_habits - done_today,
                progress=(done_today / total_habits * 100) if total_habits else 0.0
            ))
            mental_state.append(MentalStatePoint(date=key, value=self._mental_state(ratings.get(key))))

        return HabitMonthStats(
            year=year,
            month=month,
            total_habits=total_habits,
            completed_count=completed_count,
            overall_progress=(completed_count / total_possible * 100) if total_possible else 0.0,
            habits=habit_stats,
            days=day_stats,
            mental_state=mental_state
        )

    @staticmethod
    def _mental_state(entry) -> Optional[float]:
        """Mean of mood and motivation, or whichever one exists"""
        if entry is None:
            return None
        values = [v for v in (entry.mood, entry.motivation) if v is not None]
        if not values:
            return None
        return sum(values) / len(values)
