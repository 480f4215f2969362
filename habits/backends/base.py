"""
Storage backend contract.

Both implementations must answer every operation identically; callers only
ever see the domain dataclasses from ``habits.types``.
"""
from __future__ import annotations

import functools
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple, Type

from habits.exceptions import BackendNotReady
from habits.types import Habit, HabitRecord, HabitWithStatus

logger = logging.getLogger(__name__)


def reopen_once(method):
    """
    Run a backend operation against an open handle.

    Opens the backend first if needed. If the operation reports a lost handle,
    the backend is reopened and the operation retried exactly once.
    """

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if not self.is_open:
            logger.warning("%s not open, initializing before %s", self.name, method.__name__)
            self.open()
        try:
            return method(self, *args, **kwargs)
        except self.lost_handle_errors as exc:
            logger.warning("%s lost its handle during %s (%s), reopening", self.name, method.__name__, exc)
            self.close()
            self.open()
            return method(self, *args, **kwargs)

    return wrapper


class StorageBackend(ABC):
    name = "storage"

    # errors meaning "the handle is gone", retried once by ``reopen_once``
    lost_handle_errors: Tuple[Type[BaseException], ...] = (BackendNotReady,)

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @abstractmethod
    def open(self) -> None:
        """Open (or reopen) the store; raises InitializationFailure."""

    @abstractmethod
    def close(self) -> None:
        ...

    # habits

    @abstractmethod
    def create_habit(self, name: str, scheduled_time: Optional[str] = None, is_critical: bool = False) -> int:
        """Store a new habit and its pending record for today; returns the new id."""

    @abstractmethod
    def update_habit_scheduled_time(self, habit_id: int, scheduled_time: Optional[str]) -> None:
        ...

    @abstractmethod
    def get_all_active_habits(self) -> List[Habit]:
        ...

    @abstractmethod
    def delete_habit(self, habit_id: int) -> None:
        """Soft delete: hide the habit from today onwards, keep its records."""

    # records

    @abstractmethod
    def create_or_replace_record(
        self,
        habit_id: int,
        date: str,
        status: str,
        duration_minutes: Optional[int] = None,
        completion_time: Optional[str] = None,
    ) -> None:
        ...

    @abstractmethod
    def get_record(self, habit_id: int, date: str) -> Optional[HabitRecord]:
        ...

    @abstractmethod
    def update_record(
        self,
        habit_id: int,
        date: str,
        status: str,
        duration_minutes: Optional[int] = None,
        completion_time: Optional[str] = None,
    ) -> None:
        """Update in place, or create the record when the key is missing."""

    # date window

    @abstractmethod
    def get_habits_for_date(self, date: str) -> List[HabitWithStatus]:
        ...

    @abstractmethod
    def get_visible_habit_ids(self, date: str, without_record: bool = False) -> List[int]:
        """Ids of habits visible on ``date``, optionally only those with no record for it."""

    # diagnostics

    @abstractmethod
    def get_all_habits(self) -> List[Habit]:
        ...

    @abstractmethod
    def get_all_records(self) -> List[HabitRecord]:
        ...

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"<{type(self).__name__} {state}>"
