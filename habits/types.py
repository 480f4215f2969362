from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from django.db import models


class RecordStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    DONE = "done", "Done"


@dataclass(frozen=True)
class Habit:
    id: int
    name: str
    created_at: datetime
    deleted_at: Optional[str] = None
    scheduled_time: Optional[str] = None
    is_critical: bool = False

    @property
    def is_active(self) -> bool:
        return self.deleted_at is None


@dataclass(frozen=True)
class HabitRecord:
    id: int
    habit_id: int
    date: str
    status: str = RecordStatus.PENDING
    duration_minutes: Optional[int] = None
    completion_time: Optional[str] = None


@dataclass(frozen=True)
class HabitWithStatus:
    """
    A habit as seen on one calendar date.

    Dates without a record read as pending with no duration or completion time.
    """

    id: int
    name: str
    created_at: datetime
    deleted_at: Optional[str]
    scheduled_time: Optional[str]
    is_critical: bool
    status: str = RecordStatus.PENDING
    duration_minutes: Optional[int] = None
    completion_time: Optional[str] = None

    @classmethod
    def from_parts(cls, habit: Habit, record: Optional[HabitRecord]) -> "HabitWithStatus":
        if record is None:
            return cls(
                id=habit.id,
                name=habit.name,
                created_at=habit.created_at,
                deleted_at=habit.deleted_at,
                scheduled_time=habit.scheduled_time,
                is_critical=habit.is_critical,
            )
        return cls(
            id=habit.id,
            name=habit.name,
            created_at=habit.created_at,
            deleted_at=habit.deleted_at,
            scheduled_time=habit.scheduled_time,
            is_critical=habit.is_critical,
            status=record.status,
            duration_minutes=record.duration_minutes,
            completion_time=record.completion_time,
        )

    @property
    def is_done(self) -> bool:
        return self.status == RecordStatus.DONE

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = str(self.status)
        data["created_at"] = self.created_at.isoformat()
        return data
