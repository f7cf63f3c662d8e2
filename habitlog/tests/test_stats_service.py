"""
Tests for StatsService.habit_month_stats.
"""
import pytest
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError

from habitlog.exceptions import ValidationError
from habitlog.repositories.habit_repository import HabitRepository
from habitlog.services.habit_service import HabitService
from habitlog.services.progress_service import ProgressService
from habitlog.services.stats_service import StatsService
from habitlog.tests.conftest import create_habit


@pytest.fixture
def march_log(db_session, user_id, utc):
    """Two habits and a few days of March 2024"""
    habits = HabitService(db_session)
    progress = ProgressService(db_session)
    read = create_habit(db_session, user_id, name="Read", icon="📚")
    run = create_habit(db_session, user_id, name="Run", icon="🏃")

    habits.set_habit_completion(user_id, read.id, "2024-03-01", True, utc)
    habits.set_habit_completion(user_id, read.id, "2024-03-02", True, utc)
    habits.set_habit_completion(user_id, run.id, "2024-03-01", True, utc)
    habits.set_habit_completion(user_id, run.id, "2024-03-03", False, utc)
    # Outside the month
    habits.set_habit_completion(user_id, run.id, "2024-04-01", True, utc)

    progress.set_daily_progress(user_id, "2024-03-01", 6, 8, utc)
    progress.set_daily_progress(user_id, "2024-03-02", mood=4, tz=utc)

    return {"read": read, "run": run}


class TestHabitMonthStats:
    """Tests for the month aggregate"""

    def test_per_habit_counts(self, db_session, user_id, utc, march_log):
        stats = StatsService(db_session).habit_month_stats(user_id, 2024, 3, utc)

        by_id = {h.habit_id: h for h in stats.habits}
        assert by_id[march_log["read"].id].count == 2
        assert by_id[march_log["run"].id].count == 1
        assert all(h.goal == 31 for h in stats.habits)

    def test_overall_progress(self, db_session, user_id, utc, march_log):
        stats = StatsService(db_session).habit_month_stats(user_id, 2024, 3, utc)

        assert stats.total_habits == 2
        assert stats.completed_count == 3
        assert stats.overall_progress == pytest.approx(3 / 62 * 100)

    def test_daily_breakdown(self, db_session, user_id, utc, march_log):
        stats = StatsService(db_session).habit_month_stats(user_id, 2024, 3, utc)

        days = {d.date: d for d in stats.days}
        assert len(stats.days) == 31
        assert (days["2024-03-01"].done, days["2024-03-01"].not_done) == (2, 0)
        assert days["2024-03-01"].progress == 100.0
        assert days["2024-03-02"].progress == 50.0
        # Explicitly not done
        assert days["2024-03-03"].done == 0

    def test_mental_state_series(self, db_session, user_id, utc, march_log):
        stats = StatsService(db_session).habit_month_stats(user_id, 2024, 3, utc)

        points = {p.date: p.value for p in stats.mental_state}
        assert points["2024-03-01"] == 7.0
        assert points["2024-03-02"] == 4.0
        assert points["2024-03-03"] is None

    def test_empty_month(self, db_session, user_id, utc):
        stats = StatsService(db_session).habit_month_stats(user_id, 2024, 2, utc)

        assert stats.total_habits == 0
        assert stats.overall_progress == 0.0
        assert len(stats.days) == 29
        assert all(d.progress == 0.0 for d in stats.days)

    def test_unreadable_store_gives_zeroes(self, db_session, user_id, utc, march_log):
        with patch.object(HabitRepository, "get_all", side_effect=SQLAlchemyError("offline")):
            stats = StatsService(db_session).habit_month_stats(user_id, 2024, 3, utc)

        assert stats.total_habits == 0
        assert stats.habits == []

    def test_invalid_month(self, db_session, user_id):
        with pytest.raises(ValidationError):
            StatsService(db_session).habit_month_stats(user_id, 2024, 13)
