"""
Optimistic local state.

A view applies a change to its local state first, then performs the remote
write. If the write raises, the previous value is put back and the error is
re-raised for the caller to report.
"""
import logging
from contextlib import contextmanager
from datetime import tzinfo
from typing import Any, Dict, Hashable, Optional
from sqlalchemy.orm import Session

from habitlog.services.date_service import DateService
from habitlog.services.habit_service import HabitService
from habitlog.services.progress_service import ProgressService
from habitlog.validation import validate_day, validate_mental_state

logger = logging.getLogger("habitlog.optimistic")

_MISSING = object()


class OptimisticState:
    """Key/value view state with revertible pending changes"""

    def __init__(self, initial: Optional[Dict[Hashable, Any]] = None):
        self._values: Dict[Hashable, Any] = dict(initial or {})

    def get(self, key: Hashable, default: Any = None) -> Any:
        return self._values.get(key, default)

    def snapshot(self) -> Dict[Hashable, Any]:
        return dict(self._values)

    def replace(self, values: Dict[Hashable, Any]) -> None:
        self._values = dict(values)

    @contextmanager
    def pending(self, key: Hashable, value: Any):
        """
        Apply value under key for the duration of a remote write.

        Usage:
            with state.pending(key, new_value):
                gateway_call(...)
        """
        previous = self._values.get(key, _MISSING)
        self._values[key] = value
        try:
            yield value
        except Exception:
            if previous is _MISSING:
                self._values.pop(key, None)
            else:
                self._values[key] = previous
            logger.warning(f"Reverted optimistic change for {key!r}")
            raise


class CompletionBoard:
    """A month of habit completions keyed by (habit_id, yyyy-MM-dd)"""

    def __init__(self, db: Session, user_id: str, tz: Optional[tzinfo] = None):
        self.habit_service = HabitService(db)
        self.user_id = user_id
        self.tz = tz
        self.state = OptimisticState()

    def load(self, year: int, month: int) -> None:
        completions = self.habit_service.list_habit_completions(self.user_id, year, month, self.tz)
        self.state.replace({(c.habit_id, c.date): c.completed for c in completions})

    def is_completed(self, habit_id: str, day: Any) -> bool:
        return bool(self.state.get((habit_id, self._key(day)), False))

    def toggle(self, habit_id: str, day: Any) -> bool:
        """Flip a habit for a day; returns the new value once it is stored"""
        key = (habit_id, self._key(day))
        new_value = not self.state.get(key, False)
        with self.state.pending(key, new_value):
            self.habit_service.set_habit_completion(self.user_id, habit_id, day, new_value, self.tz)
        return new_value

    def _key(self, day: Any) -> str:
        return DateService.to_day_string(validate_day(day, tz=self.tz))


class ProgressBoard:
    """A month of mood/motivation ratings keyed by yyyy-MM-dd"""

    def __init__(self, db: Session, user_id: str, tz: Optional[tzinfo] = None):
        self.progress_service = ProgressService(db)
        self.user_id = user_id
        self.tz = tz
        self.state = OptimisticState()

    def load(self, year: int, month: int) -> None:
        entries = self.progress_service.list_daily_progress(self.user_id, year, month, self.tz)
        self.state.replace({
            p.date: {"mood": p.mood, "motivation": p.motivation} for p in entries
        })

    def get(self, day: Any) -> Dict[str, Optional[int]]:
        return self.state.get(self._key(day), {"mood": None, "motivation": None})

    def update_mood(self, day: Any, value: Any) -> Dict[str, Optional[int]]:
        return self._update(day, "mood", value)

    def update_motivation(self, day: Any, value: Any) -> Dict[str, Optional[int]]:
        return self._update(day, "motivation", value)

    def _update(self, day: Any, field: str, value: Any) -> Dict[str, Optional[int]]:
        key = self._key(day)
        current = self.get(day)
        # An empty selection clears the rating
        rating = validate_mental_state(value if value != "" else None, field.capitalize())
        updated = {**current, field: rating}
        with self.state.pending(key, updated):
            self.progress_service.set_daily_progress(
                self.user_id, day, updated["mood"], updated["motivation"], self.tz
            )
        return updated

    def _key(self, day: Any) -> str:
        return DateService.to_day_string(validate_day(day, tz=self.tz))
