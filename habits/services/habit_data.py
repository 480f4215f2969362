import logging
from typing import List, Optional, Union
from datetime import date as date_type

from habits import dates
from habits.repository import HabitRepository
from habits.services.ordering import sort_habits
from habits.types import Habit, HabitWithStatus, RecordStatus

logger = logging.getLogger(__name__)


def _validate_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError("Habit name must not be empty")
    return name.strip()


def _validate_duration(duration_minutes: Optional[int]) -> Optional[int]:
    if duration_minutes is None:
        return None
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes < 0:
        raise ValueError(f"durationMinutes must be a non-negative integer, got {duration_minutes!r}")
    return duration_minutes


class HabitDataService:
    """
    Date-window queries over the active storage backend.

    Every read of a date first materializes pending records for the habits
    visible on it, so status updates always find a row to change.
    """

    def __init__(self, repository: HabitRepository):
        self.repository = repository

    def initialize(self) -> None:
        self.repository.open()

    # habits

    def create_habit(self, name: str, scheduled_time: Optional[str] = None, is_critical: bool = False) -> int:
        name = _validate_name(name)
        scheduled_time = dates.validate_time(scheduled_time, "scheduledTime")
        return self.repository.create_habit(name, scheduled_time, bool(is_critical))

    def update_habit_scheduled_time(self, habit_id: int, scheduled_time: Optional[str]) -> None:
        scheduled_time = dates.validate_time(scheduled_time, "scheduledTime")
        self.repository.update_habit_scheduled_time(habit_id, scheduled_time)

    def get_active_habits(self) -> List[Habit]:
        return self.repository.get_all_active_habits()

    def delete_habit(self, habit_id: int) -> None:
        self.repository.delete_habit(habit_id)

    # date window

    def ensure_records_for_date(self, date: Union[str, date_type]) -> int:
        """Create a pending record for every visible habit missing one; returns how many were created."""
        date = dates.normalize_date(date)
        created = 0
        for habit_id in self.repository.get_visible_habit_ids(date, without_record=True):
            self.repository.create_or_replace_record(habit_id, date, RecordStatus.PENDING, None, None)
            created += 1
        if created:
            logger.debug("Materialized %d pending records for %s", created, date)
        return created

    def get_today_habits(self) -> List[HabitWithStatus]:
        return self.get_habits_for_date(dates.today_string(), prioritized=True)

    def get_habits_for_date(self, date: Union[str, date_type], prioritized: bool = False) -> List[HabitWithStatus]:
        date = dates.normalize_date(date)
        self.ensure_records_for_date(date)
        habits = self.repository.get_habits_for_date(date)
        return sort_habits(habits) if prioritized else habits

    # today's record

    def mark_habit_done(
        self,
        habit_id: int,
        duration_minutes: Optional[int] = None,
        completion_time: Optional[str] = None,
    ) -> None:
        duration_minutes = _validate_duration(duration_minutes)
        completion_time = dates.validate_time(completion_time, "completionTime")
        self.repository.update_record(
            habit_id, dates.today_string(), RecordStatus.DONE, duration_minutes, completion_time
        )

    def mark_habit_pending(self, habit_id: int) -> None:
        self.repository.update_record(habit_id, dates.today_string(), RecordStatus.PENDING, None, None)
