"""
Key-value habit store.

The whole data set lives in memory. Every mutation writes all four JSON blobs
back to the cache before returning.
"""
import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass, replace
from datetime import datetime, timezone as dt_timezone
from typing import Any, Dict, List, Optional

from django.core.cache import InvalidCacheBackendError, caches
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from habits import dates
from habits.backends.base import StorageBackend, reopen_once
from habits.exceptions import BackendNotReady, HabitStorageError, InitializationFailure
from habits.types import Habit, HabitRecord, HabitWithStatus, RecordStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreKeys:
    prefix: str = "myhabit"

    @property
    def habits(self) -> str:
        return f"{self.prefix}_habits"

    @property
    def records(self) -> str:
        return f"{self.prefix}_records"

    @property
    def last_habit_id(self) -> str:
        return f"{self.prefix}_last_habit_id"

    @property
    def last_record_id(self) -> str:
        return f"{self.prefix}_last_record_id"

    def all(self) -> List[str]:
        return [self.habits, self.records, self.last_habit_id, self.last_record_id]


def _parse_created_at(value: str) -> datetime:
    moment = parse_datetime(value)
    if moment is None:
        raise ValueError(f"Bad createdAt value {value!r}")
    if timezone.is_naive(moment):
        moment = timezone.make_aware(moment, dt_timezone.utc)
    return moment


def habit_to_blob(habit: Habit) -> Dict[str, Any]:
    return {
        "id": habit.id,
        "name": habit.name,
        "createdAt": habit.created_at.isoformat(),
        "deletedAt": habit.deleted_at,
        "scheduledTime": habit.scheduled_time,
        "isCritical": habit.is_critical,
    }


def habit_from_blob(data: Dict[str, Any]) -> Habit:
    deleted_at = data.get("deletedAt")
    return Habit(
        id=int(data["id"]),
        name=data["name"],
        created_at=_parse_created_at(data["createdAt"]),
        # older blobs may hold a full timestamp here
        deleted_at=dates.normalize_date(deleted_at[:10]) if deleted_at else None,
        scheduled_time=data.get("scheduledTime") or None,
        is_critical=bool(data.get("isCritical", False)),
    )


def record_to_blob(record: HabitRecord) -> Dict[str, Any]:
    return {
        "id": record.id,
        "habitId": record.habit_id,
        "date": record.date,
        "status": str(record.status),
        "durationMinutes": record.duration_minutes,
        "completionTime": record.completion_time,
    }


def record_from_blob(data: Dict[str, Any]) -> HabitRecord:
    return HabitRecord(
        id=int(data["id"]),
        habit_id=int(data["habitId"]),
        date=dates.normalize_date(data["date"]),
        status=RecordStatus(data.get("status") or RecordStatus.PENDING),
        duration_minutes=data.get("durationMinutes"),
        completion_time=data.get("completionTime") or None,
    )


class KeyValueBackend(StorageBackend):
    name = "keyvalue"

    def __init__(self, store=None, cache_alias: str = "habits", key_prefix: str = "myhabit"):
        self._store = store
        self.cache_alias = cache_alias
        self.keys = StoreKeys(key_prefix)
        self._handle = None
        self._habits: List[Habit] = []
        self._records: List[HabitRecord] = []
        self._last_habit_id = 0
        self._last_record_id = 0

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    def open(self) -> None:
        self.close()
        try:
            handle = self._store if self._store is not None else caches[self.cache_alias]
            blobs = handle.get_many(self.keys.all())
            habits = [habit_from_blob(item) for item in json.loads(blobs.get(self.keys.habits) or "[]")]
            records = [record_from_blob(item) for item in json.loads(blobs.get(self.keys.records) or "[]")]
            last_habit_id = int(blobs.get(self.keys.last_habit_id) or 0)
            last_record_id = int(blobs.get(self.keys.last_record_id) or 0)
        except (InvalidCacheBackendError, OSError, KeyError, TypeError, ValueError) as exc:
            logger.error("Could not load key-value habit store %r: %s", self.cache_alias, exc)
            raise InitializationFailure(f"Could not load key-value habit store {self.cache_alias!r}: {exc}") from exc

        self._habits = habits
        self._records = records
        # never hand out an id lower than one already stored
        self._last_habit_id = max([last_habit_id] + [h.id for h in habits])
        self._last_record_id = max([last_record_id] + [r.id for r in records])
        self._handle = handle
        logger.info("Loaded %d habits and %d records from key-value store", len(habits), len(records))

    def close(self) -> None:
        self._handle = None

    def _save(self) -> None:
        if self._handle is None:
            raise BackendNotReady("Key-value habit store is not open")
        failed = self._handle.set_many(
            {
                self.keys.habits: json.dumps([habit_to_blob(h) for h in self._habits], cls=DjangoJSONEncoder),
                self.keys.records: json.dumps([record_to_blob(r) for r in self._records], cls=DjangoJSONEncoder),
                self.keys.last_habit_id: str(self._last_habit_id),
                self.keys.last_record_id: str(self._last_record_id),
            },
            timeout=None,
        )
        if failed:
            raise HabitStorageError(f"Key-value store rejected keys: {', '.join(failed)}")

    # helpers

    def _find_habit(self, habit_id: int) -> Optional[int]:
        for index, habit in enumerate(self._habits):
            if habit.id == habit_id:
                return index
        return None

    def _find_record(self, habit_id: int, date: str) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.habit_id == habit_id and record.date == date:
                return index
        return None

    def _is_visible(self, habit: Habit, day) -> bool:
        if dates.local_date_of(habit.created_at) > day:
            return False
        return habit.deleted_at is None or dates.parse_date_string(habit.deleted_at) > day

    def _visible(self, day) -> List[Habit]:
        habits = [h for h in self._habits if self._is_visible(h, day)]
        return sorted(habits, key=lambda h: (h.created_at, h.id))

    def _accepts_record(self, habit_id: int, date: str) -> bool:
        index = self._find_habit(habit_id)
        if index is None or dates.local_date_of(self._habits[index].created_at) > dates.parse_date_string(date):
            logger.debug("No habit %s on %s, record not written", habit_id, date)
            return False
        return True

    def _replace_record(self, habit_id, date, status, duration_minutes, completion_time) -> None:
        self._records = [r for r in self._records if not (r.habit_id == habit_id and r.date == date)]
        self._last_record_id += 1
        self._records.append(
            HabitRecord(
                id=self._last_record_id,
                habit_id=habit_id,
                date=date,
                status=RecordStatus(status),
                duration_minutes=duration_minutes,
                completion_time=completion_time,
            )
        )

    @contextmanager
    def _saving(self):
        """Persist the changes made in the block, or undo them if the write fails."""
        state = (list(self._habits), list(self._records), self._last_habit_id, self._last_record_id)
        try:
            yield
            self._save()
        except Exception:
            self._habits, self._records, self._last_habit_id, self._last_record_id = state
            raise

    # habits

    @reopen_once
    def create_habit(self, name: str, scheduled_time: Optional[str] = None, is_critical: bool = False) -> int:
        now = timezone.now()
        with self._saving():
            self._last_habit_id += 1
            habit = Habit(
                id=self._last_habit_id,
                name=name,
                created_at=now,
                deleted_at=None,
                scheduled_time=scheduled_time,
                is_critical=is_critical,
            )
            self._habits.append(habit)
            self._replace_record(habit.id, dates.format_date(now), RecordStatus.PENDING, None, None)
        logger.info("Created habit %s (%r)", habit.id, name)
        return habit.id

    @reopen_once
    def update_habit_scheduled_time(self, habit_id: int, scheduled_time: Optional[str]) -> None:
        index = self._find_habit(habit_id)
        if index is None:
            return
        with self._saving():
            self._habits[index] = replace(self._habits[index], scheduled_time=scheduled_time)

    @reopen_once
    def get_all_active_habits(self) -> List[Habit]:
        return sorted((h for h in self._habits if h.is_active), key=lambda h: (h.created_at, h.id))

    @reopen_once
    def delete_habit(self, habit_id: int) -> None:
        index = self._find_habit(habit_id)
        if index is None or not self._habits[index].is_active:
            return
        with self._saving():
            self._habits[index] = replace(self._habits[index], deleted_at=dates.today_string())
        logger.info("Soft deleted habit %s", habit_id)

    # records

    @reopen_once
    def create_or_replace_record(self, habit_id, date, status, duration_minutes=None, completion_time=None) -> None:
        date = dates.normalize_date(date)
        if not self._accepts_record(habit_id, date):
            return
        with self._saving():
            self._replace_record(habit_id, date, status, duration_minutes, completion_time)

    @reopen_once
    def get_record(self, habit_id: int, date: str) -> Optional[HabitRecord]:
        index = self._find_record(habit_id, dates.normalize_date(date))
        return self._records[index] if index is not None else None

    @reopen_once
    def update_record(self, habit_id, date, status, duration_minutes=None, completion_time=None) -> None:
        date = dates.normalize_date(date)
        index = self._find_record(habit_id, date)
        if index is None:
            if self._accepts_record(habit_id, date):
                with self._saving():
                    self._replace_record(habit_id, date, status, duration_minutes, completion_time)
            return
        with self._saving():
            self._records[index] = replace(
                self._records[index],
                status=RecordStatus(status),
                duration_minutes=duration_minutes,
                completion_time=completion_time,
            )

    # date window

    @reopen_once
    def get_habits_for_date(self, date: str) -> List[HabitWithStatus]:
        date = dates.normalize_date(date)
        day = dates.parse_date_string(date)
        by_habit = {r.habit_id: r for r in self._records if r.date == date}
        return [HabitWithStatus.from_parts(h, by_habit.get(h.id)) for h in self._visible(day)]

    @reopen_once
    def get_visible_habit_ids(self, date: str, without_record: bool = False) -> List[int]:
        date = dates.normalize_date(date)
        habits = self._visible(dates.parse_date_string(date))
        if without_record:
            recorded = {r.habit_id for r in self._records if r.date == date}
            habits = [h for h in habits if h.id not in recorded]
        return [h.id for h in habits]

    # diagnostics

    @reopen_once
    def get_all_habits(self) -> List[Habit]:
        return sorted(self._habits, key=lambda h: (h.created_at, h.id))

    @reopen_once
    def get_all_records(self) -> List[HabitRecord]:
        by_habit = sorted(self._records, key=lambda r: r.habit_id)
        return sorted(by_habit, key=lambda r: r.date, reverse=True)
