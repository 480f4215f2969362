import logging
from typing import List, Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import connections

from habits.backends import KeyValueBackend, RelationalBackend, StorageBackend
from habits.types import Habit, HabitRecord, HabitWithStatus

logger = logging.getLogger(__name__)

BACKEND_CHOICES = ("auto", "relational", "keyvalue")


def _habits_settings() -> dict:
    options = {
        "BACKEND": "auto",
        "DATABASE_ALIAS": "default",
        "CACHE_ALIAS": "habits",
        "KEY_PREFIX": "myhabit",
    }
    options.update(getattr(settings, "HABITS", {}))
    return options


def detect_backend_name(database_alias: str = "default") -> str:
    """
    Pick the storage for this environment: a configured SQL database means
    relational, anything else falls back to the key-value store.
    """
    if database_alias not in settings.DATABASES:
        return "keyvalue"
    engine = connections[database_alias].settings_dict.get("ENGINE") or ""
    if not engine or engine.endswith(".dummy"):
        return "keyvalue"
    return "relational"


def build_backend(name: Optional[str] = None) -> StorageBackend:
    options = _habits_settings()
    name = (name or options["BACKEND"]).lower()
    if name not in BACKEND_CHOICES:
        raise ImproperlyConfigured(f"HABITS['BACKEND'] must be one of {BACKEND_CHOICES}, got {name!r}")
    if name == "auto":
        name = detect_backend_name(options["DATABASE_ALIAS"])
    if name == "relational":
        return RelationalBackend(alias=options["DATABASE_ALIAS"])
    return KeyValueBackend(cache_alias=options["CACHE_ALIAS"], key_prefix=options["KEY_PREFIX"])


class HabitRepository:
    """Routes every call to the one backend chosen when the repository was built."""

    def __init__(self, backend: StorageBackend):
        self._backend = backend

    @classmethod
    def from_settings(cls, name: Optional[str] = None) -> "HabitRepository":
        backend = build_backend(name)
        logger.info("Habit storage backend: %s", backend.name)
        return cls(backend)

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    def open(self) -> None:
        self._backend.open()

    def close(self) -> None:
        self._backend.close()

    def create_habit(self, name: str, scheduled_time: Optional[str] = None, is_critical: bool = False) -> int:
        return self._backend.create_habit(name, scheduled_time, is_critical)

    def update_habit_scheduled_time(self, habit_id: int, scheduled_time: Optional[str]) -> None:
        self._backend.update_habit_scheduled_time(habit_id, scheduled_time)

    def get_all_active_habits(self) -> List[Habit]:
        return self._backend.get_all_active_habits()

    def delete_habit(self, habit_id: int) -> None:
        self._backend.delete_habit(habit_id)

    def create_or_replace_record(self, habit_id, date, status, duration_minutes=None, completion_time=None) -> None:
        self._backend.create_or_replace_record(habit_id, date, status, duration_minutes, completion_time)

    def get_record(self, habit_id: int, date: str) -> Optional[HabitRecord]:
        return self._backend.get_record(habit_id, date)

    def update_record(self, habit_id, date, status, duration_minutes=None, completion_time=None) -> None:
        self._backend.update_record(habit_id, date, status, duration_minutes, completion_time)

    def get_habits_for_date(self, date: str) -> List[HabitWithStatus]:
        return self._backend.get_habits_for_date(date)

    def get_visible_habit_ids(self, date: str, without_record: bool = False) -> List[int]:
        return self._backend.get_visible_habit_ids(date, without_record)
