import logging
from typing import Any, Dict, List, Optional, Sequence

from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.db import DatabaseError, InterfaceError, connections, transaction
from django.db.models import Prefetch, Q
from django.utils import timezone

from habits import dates, models
from habits.backends.base import StorageBackend, reopen_once
from habits.exceptions import BackendNotReady, InitializationFailure
from habits.types import Habit, HabitRecord, HabitWithStatus, RecordStatus

logger = logging.getLogger(__name__)

SCHEMA_MODELS = (models.Habit, models.HabitRecord)


def is_duplicate_column_error(exc: BaseException) -> bool:
    """True for the "column already there" failures of SQLite, PostgreSQL and MySQL."""
    message = str(exc).lower()
    return "duplicate column" in message or "already exists" in message


def _to_habit(row: models.Habit) -> Habit:
    return Habit(
        id=row.id,
        name=row.name,
        created_at=row.created_at,
        deleted_at=dates.format_date(row.deleted_at) if row.deleted_at else None,
        scheduled_time=row.scheduled_time or None,
        is_critical=bool(row.is_critical),
    )


def _to_record(row: models.HabitRecord) -> HabitRecord:
    return HabitRecord(
        id=row.id,
        habit_id=row.habit_id,
        date=dates.format_date(row.date),
        status=RecordStatus(row.status),
        duration_minutes=row.duration_minutes,
        completion_time=row.completion_time or None,
    )


class RelationalBackend(StorageBackend):
    """Habits and records in the ``habits`` / ``habit_records`` tables via the Django ORM."""

    name = "relational"
    lost_handle_errors = (BackendNotReady, InterfaceError)

    def __init__(self, alias: str = "default"):
        self.alias = alias
        self._opened = False

    @property
    def connection(self):
        return connections[self.alias]

    @property
    def is_open(self) -> bool:
        return self._opened

    def open(self) -> None:
        self.close()
        try:
            self.connection.ensure_connection()
            self.ensure_schema()
        except (DatabaseError, ImproperlyConfigured) as exc:
            logger.error("Could not open habit database %r: %s", self.alias, exc)
            raise InitializationFailure(f"Could not open habit database {self.alias!r}: {exc}") from exc
        self._opened = True
        logger.info("Opened relational habit store %s", self.connection.settings_dict.get("NAME"))

    def close(self) -> None:
        conn = self.connection
        # closing inside an atomic block would throw away the caller's transaction
        if self._opened and not conn.in_atomic_block:
            conn.close()
        self._opened = False

    # schema

    def ensure_schema(self) -> None:
        conn = self.connection
        tables = set(conn.introspection.table_names())
        if any(model._meta.db_table not in tables for model in SCHEMA_MODELS):
            logger.info("Creating habit tables on %r", self.alias)
            call_command("migrate", "habits", database=self.alias, interactive=False, verbosity=0)
            return
        for model in SCHEMA_MODELS:
            self._add_missing_columns(model)

    def _add_missing_columns(self, model) -> None:
        conn = self.connection
        table = model._meta.db_table
        with conn.cursor() as cursor:
            present = {col.name for col in conn.introspection.get_table_description(cursor, table)}
        for field in model._meta.local_concrete_fields:
            if field.column not in present:
                self.add_column(model, field)

    def add_column(self, model, field) -> bool:
        """Add ``field`` to an existing table; an already present column is a no-op."""
        try:
            with self.connection.schema_editor() as editor:
                editor.add_field(model, field)
        except DatabaseError as exc:
            if not is_duplicate_column_error(exc):
                raise
            logger.warning("Column %s.%s already exists, skipping", model._meta.db_table, field.column)
            return False
        logger.info("Added column %s.%s", model._meta.db_table, field.column)
        return True

    # helpers

    def _habits(self):
        return models.Habit.objects.using(self.alias)

    def _records(self):
        return models.HabitRecord.objects.using(self.alias)

    def _visible(self, day):
        return self._habits().filter(created_at__date__lte=day).filter(
            Q(deleted_at__isnull=True) | Q(deleted_at__gt=day)
        )

    def _replace_record(self, habit_id, day, status, duration_minutes, completion_time) -> None:
        habit = self._habits().filter(pk=habit_id).first()
        if habit is None or dates.local_date_of(habit.created_at) > day:
            logger.debug("No habit %s on %s, record not written", habit_id, day)
            return
        self._records().filter(habit_id=habit_id, date=day).delete()
        self._records().create(
            habit_id=habit_id,
            date=day,
            status=status,
            duration_minutes=duration_minutes,
            completion_time=completion_time,
        )

    # habits

    @reopen_once
    def create_habit(self, name: str, scheduled_time: Optional[str] = None, is_critical: bool = False) -> int:
        now = timezone.now()
        with transaction.atomic(using=self.alias):
            habit = self._habits().create(
                name=name,
                created_at=now,
                deleted_at=None,
                scheduled_time=scheduled_time,
                is_critical=is_critical,
            )
            self._replace_record(habit.id, dates.local_date_of(now), RecordStatus.PENDING, None, None)
        logger.info("Created habit %s (%r)", habit.id, name)
        return habit.id

    @reopen_once
    def update_habit_scheduled_time(self, habit_id: int, scheduled_time: Optional[str]) -> None:
        self._habits().filter(pk=habit_id).update(scheduled_time=scheduled_time)

    @reopen_once
    def get_all_active_habits(self) -> List[Habit]:
        qs = self._habits().filter(deleted_at__isnull=True).order_by("created_at", "id")
        return [_to_habit(row) for row in qs]

    @reopen_once
    def delete_habit(self, habit_id: int) -> None:
        updated = self._habits().filter(pk=habit_id, deleted_at__isnull=True).update(deleted_at=dates.today())
        if updated:
            logger.info("Soft deleted habit %s", habit_id)

    # records

    @reopen_once
    def create_or_replace_record(self, habit_id, date, status, duration_minutes=None, completion_time=None) -> None:
        day = dates.parse_date_string(date)
        with transaction.atomic(using=self.alias):
            self._replace_record(habit_id, day, status, duration_minutes, completion_time)

    @reopen_once
    def get_record(self, habit_id: int, date: str) -> Optional[HabitRecord]:
        row = self._records().filter(habit_id=habit_id, date=dates.parse_date_string(date)).first()
        return _to_record(row) if row is not None else None

    @reopen_once
    def update_record(self, habit_id, date, status, duration_minutes=None, completion_time=None) -> None:
        day = dates.parse_date_string(date)
        with transaction.atomic(using=self.alias):
            updated = self._records().filter(habit_id=habit_id, date=day).update(
                status=status,
                duration_minutes=duration_minutes,
                completion_time=completion_time,
            )
            if not updated:
                self._replace_record(habit_id, day, status, duration_minutes, completion_time)

    # date window

    @reopen_once
    def get_habits_for_date(self, date: str) -> List[HabitWithStatus]:
        day = dates.parse_date_string(date)
        qs = (
            self._visible(day)
            .order_by("created_at", "id")
            .prefetch_related(
                Prefetch("records", queryset=self._records().filter(date=day), to_attr="day_records")
            )
        )
        result = []
        for row in qs:
            record = _to_record(row.day_records[0]) if row.day_records else None
            result.append(HabitWithStatus.from_parts(_to_habit(row), record))
        return result

    @reopen_once
    def get_visible_habit_ids(self, date: str, without_record: bool = False) -> List[int]:
        day = dates.parse_date_string(date)
        qs = self._visible(day)
        if without_record:
            qs = qs.exclude(records__date=day)
        return list(qs.order_by("created_at", "id").values_list("id", flat=True))

    # diagnostics

    @reopen_once
    def get_all_habits(self) -> List[Habit]:
        return [_to_habit(row) for row in self._habits().order_by("created_at", "id")]

    @reopen_once
    def get_all_records(self) -> List[HabitRecord]:
        return [_to_record(row) for row in self._records().order_by("-date", "habit_id")]

    @reopen_once
    def run_query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        with self.connection.cursor() as cursor:
            cursor.execute(sql, list(params))
            if cursor.description is None:
                return []
            columns = [col[0] for col in cursor.description]
            return [dict(zip(columns, row)) for row in cursor.fetchall()]
