"""
Tests for optimistic view state.

Tests cover:
1. OptimisticState keeps a change on success and reverts it on failure
2. CompletionBoard toggling against the database
3. ProgressBoard rating updates, clearing and failure handling
"""
import pytest
from datetime import datetime, timezone
from unittest.mock import patch
from sqlalchemy.exc import SQLAlchemyError

from habitlog.exceptions import StorageError, ValidationError
from habitlog.repositories.habit_repository import HabitCompletionRepository
from habitlog.repositories.progress_repository import DailyProgressRepository
from habitlog.services.habit_service import HabitService
from habitlog.services.optimistic import OptimisticState, CompletionBoard, ProgressBoard
from habitlog.services.progress_service import ProgressService
from habitlog.tests.conftest import create_habit


class TestOptimisticState:
    """Tests for the pending context manager"""

    def test_keeps_value_on_success(self):
        state = OptimisticState({"a": 1})

        with state.pending("a", 2):
            assert state.get("a") == 2

        assert state.get("a") == 2

    def test_restores_previous_value_on_failure(self):
        state = OptimisticState({"a": 1})

        with pytest.raises(RuntimeError):
            with state.pending("a", 2):
                raise RuntimeError("write failed")

        assert state.get("a") == 1

    def test_removes_new_key_on_failure(self):
        state = OptimisticState()

        with pytest.raises(StorageError):
            with state.pending("fresh", True):
                raise StorageError("save", "offline")

        assert "fresh" not in state.snapshot()

    def test_snapshot_is_a_copy(self):
        state = OptimisticState({"a": 1})
        snapshot = state.snapshot()
        snapshot["a"] = 99

        assert state.get("a") == 1


class TestCompletionBoard:
    """Tests for CompletionBoard"""

    def test_toggle_persists(self, db_session, user_id, utc):
        habit = create_habit(db_session, user_id)
        board = CompletionBoard(db_session, user_id, utc)
        board.load(2024, 3)

        assert board.toggle(habit.id, "2024-03-07") is True
        assert board.is_completed(habit.id, "2024-03-07")

        reloaded = CompletionBoard(db_session, user_id, utc)
        reloaded.load(2024, 3)
        assert reloaded.is_completed(habit.id, "2024-03-07")

    def test_toggle_twice_clears(self, db_session, user_id, utc):
        habit = create_habit(db_session, user_id)
        board = CompletionBoard(db_session, user_id, utc)

        board.toggle(habit.id, "2024-03-07")
        assert board.toggle(habit.id, "2024-03-07") is False

        completions = HabitService(db_session).list_habit_completions(user_id, 2024, 3, utc)
        assert [c.completed for c in completions] == [False]

    def test_toggle_keys_instant_by_board_calendar(self, db_session, user_id, tokyo):
        habit = create_habit(db_session, user_id)
        board = CompletionBoard(db_session, user_id, tokyo)
        instant = datetime(2024, 3, 15, 20, 0, tzinfo=timezone.utc)

        board.toggle(habit.id, instant)

        assert board.is_completed(habit.id, "2024-03-16")
        reloaded = CompletionBoard(db_session, user_id, tokyo)
        reloaded.load(2024, 3)
        assert reloaded.is_completed(habit.id, "2024-03-16")

    def test_failed_write_reverts(self, db_session, user_id, utc):
        """The checkbox goes back to unchecked when the write fails"""
        habit = create_habit(db_session, user_id)
        board = CompletionBoard(db_session, user_id, utc)
        board.load(2024, 3)

        with patch.object(HabitCompletionRepository, "create", side_effect=SQLAlchemyError("offline")):
            with pytest.raises(StorageError):
                board.toggle(habit.id, "2024-03-07")

        assert not board.is_completed(habit.id, "2024-03-07")


class TestProgressBoard:
    """Tests for ProgressBoard"""

    def test_update_mood_then_motivation(self, db_session, user_id, utc):
        board = ProgressBoard(db_session, user_id, utc)

        board.update_mood("2024-03-15", 7)
        board.update_motivation("2024-03-15", "4")

        assert board.get("2024-03-15") == {"mood": 7, "motivation": 4}
        stored = ProgressService(db_session).list_daily_progress(user_id, 2024, 3, utc)
        assert [(p.mood, p.motivation) for p in stored] == [(7, 4)]

    def test_empty_selection_clears(self, db_session, user_id, utc):
        board = ProgressBoard(db_session, user_id, utc)
        board.update_mood("2024-03-15", 7)

        board.update_mood("2024-03-15", "")

        assert board.get("2024-03-15")["mood"] is None

    def test_load_existing_entries(self, db_session, user_id, utc):
        ProgressService(db_session).set_daily_progress(user_id, "2024-03-02", 3, 9, utc)
        board = ProgressBoard(db_session, user_id, utc)

        board.load(2024, 3)

        assert board.get("2024-03-02") == {"mood": 3, "motivation": 9}
        assert board.get("2024-03-03") == {"mood": None, "motivation": None}

    def test_invalid_rating_leaves_state(self, db_session, user_id, utc):
        board = ProgressBoard(db_session, user_id, utc)
        board.update_mood("2024-03-15", 5)

        with pytest.raises(ValidationError):
            board.update_mood("2024-03-15", 42)

        assert board.get("2024-03-15")["mood"] == 5

    def test_failed_write_reverts(self, db_session, user_id, utc):
        board = ProgressBoard(db_session, user_id, utc)

        with patch.object(DailyProgressRepository, "create", side_effect=SQLAlchemyError("offline")):
            with pytest.raises(StorageError):
                board.update_mood("2024-03-15", 8)

        assert board.get("2024-03-15") == {"mood": None, "motivation": None}
