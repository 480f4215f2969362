"""
Read-only debug views of the habit store.

Nothing here materializes records or changes data.
"""
import logging
from typing import Any, Dict, List, Sequence

from habits import dates
from habits.backends import RelationalBackend, StorageBackend

logger = logging.getLogger(__name__)


class StorageDiagnostics:
    def __init__(self, backend: StorageBackend):
        self.backend = backend

    def all_habits(self) -> List[Dict[str, Any]]:
        return [_habit_dict(h) for h in self.backend.get_all_habits()]

    def all_records(self) -> List[Dict[str, Any]]:
        return [
            {
                "id": r.id,
                "habit_id": r.habit_id,
                "date": r.date,
                "status": str(r.status),
                "duration_minutes": r.duration_minutes,
                "completion_time": r.completion_time,
            }
            for r in self.backend.get_all_records()
        ]

    def snapshot(self) -> Dict[str, Any]:
        today = dates.today_string()
        yesterday = dates.yesterday_string()
        return {
            "backend": self.backend.name,
            "today": today,
            "habits": self.all_habits(),
            "active_habits": [_habit_dict(h) for h in self.backend.get_all_active_habits()],
            "records": self.all_records(),
            "today_habits": [h.as_dict() for h in self.backend.get_habits_for_date(today)],
            "yesterday_habits": [h.as_dict() for h in self.backend.get_habits_for_date(yesterday)],
        }

    def run_query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        if not isinstance(self.backend, RelationalBackend):
            logger.warning("Raw SQL queries are not supported on the %s backend", self.backend.name)
            return []
        return self.backend.run_query(sql, params)


def _habit_dict(habit) -> Dict[str, Any]:
    return {
        "id": habit.id,
        "name": habit.name,
        "created_at": habit.created_at.isoformat(),
        "deleted_at": habit.deleted_at,
        "scheduled_time": habit.scheduled_time,
        "is_critical": habit.is_critical,
    }
