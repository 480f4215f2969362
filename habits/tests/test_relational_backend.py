import pytest
from django.db import DatabaseError, InterfaceError, OperationalError, connection, connections

from habits.backends import RelationalBackend
from habits.backends.relational import is_duplicate_column_error
from habits.exceptions import InitializationFailure
from habits.models import Habit as HabitRow, HabitRecord as HabitRecordRow

pytestmark = pytest.mark.django_db


@pytest.fixture()
def relational(clock):
    backend = RelationalBackend()
    backend.open()
    return backend


def _columns(table):
    with connection.cursor() as cursor:
        return [col.name for col in connection.introspection.get_table_description(cursor, table)]


def test_schema__tables_and_columns_use_persisted_names(relational):
    assert _columns("habits") == ["id", "name", "createdAt", "deletedAt", "scheduledTime", "isCritical"]
    assert set(_columns("habit_records")) == {"id", "habitId", "date", "status", "durationMinutes", "completionTime"}


def test_schema__unique_key_and_date_indexes(relational):
    with connection.cursor() as cursor:
        constraints = connection.introspection.get_constraints(cursor, "habit_records")

    unique_columns = [c["columns"] for c in constraints.values() if c["unique"] and not c["primary_key"]]
    assert ["habitId", "date"] in unique_columns
    assert "idx_habit_records_date" in constraints
    assert "idx_habit_records_habitId" in constraints


def test_ensure_schema__is_a_noop_on_complete_tables(relational, monkeypatch):
    added = []
    monkeypatch.setattr(RelationalBackend, "add_column", lambda self, model, field: added.append(field.column))

    relational.ensure_schema()
    relational.ensure_schema()
    assert added == []


def test_ensure_schema__adds_columns_missing_from_existing_tables(relational, monkeypatch):
    real = connection.introspection.get_table_description

    def without_completion_time(cursor, table):
        return [col for col in real(cursor, table) if col.name != "completionTime"]

    added = []
    monkeypatch.setattr(connection.introspection, "get_table_description", without_completion_time)
    monkeypatch.setattr(
        RelationalBackend, "add_column", lambda self, model, field: added.append((model._meta.db_table, field.column))
    )

    relational.ensure_schema()
    assert added == [("habit_records", "completionTime")]


def test_add_column__already_present_column_is_ignored(relational, monkeypatch):
    class Editor:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def add_field(self, model, field):
            raise OperationalError("duplicate column name: scheduledTime")

    monkeypatch.setattr(connection, "schema_editor", lambda *args, **kwargs: Editor())
    field = HabitRow._meta.get_field("scheduled_time")
    assert relational.add_column(HabitRow, field) is False


def test_add_column__other_database_errors_propagate(relational, monkeypatch):
    class Editor:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def add_field(self, model, field):
            raise OperationalError("disk I/O error")

    monkeypatch.setattr(connection, "schema_editor", lambda *args, **kwargs: Editor())
    with pytest.raises(OperationalError):
        relational.add_column(HabitRecordRow, HabitRecordRow._meta.get_field("completion_time"))


@pytest.mark.parametrize(
    "message, expected",
    [
        ("duplicate column name: isCritical", True),
        ('column "isCritical" of relation "habits" already exists', True),
        ("Duplicate column name 'isCritical'", True),
        ("no such table: habits", False),
    ],
)
def test_is_duplicate_column_error(message, expected):
    assert is_duplicate_column_error(DatabaseError(message)) is expected


def test_open__connection_failure_raises_initialization_failure(monkeypatch):
    def refuse():
        raise OperationalError("unable to open database file")

    monkeypatch.setattr(connections["default"], "ensure_connection", refuse)
    backend = RelationalBackend()
    with pytest.raises(InitializationFailure) as excinfo:
        backend.open()
    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert not backend.is_open


def test_lost_connection__operation_is_retried_once(relational, monkeypatch):
    habit_id = relational.create_habit("Retry")
    original = RelationalBackend._habits
    failures = []

    def flaky(self):
        if not failures:
            failures.append(1)
            raise InterfaceError("connection already closed")
        return original(self)

    monkeypatch.setattr(RelationalBackend, "_habits", flaky)
    assert [h.id for h in relational.get_all_active_habits()] == [habit_id]
    assert failures == [1]


def test_lost_connection__second_failure_propagates(relational, monkeypatch):
    calls = []

    def broken(self):
        calls.append(1)
        raise InterfaceError("connection already closed")

    monkeypatch.setattr(RelationalBackend, "_habits", broken)
    with pytest.raises(InterfaceError):
        relational.get_all_active_habits()
    assert len(calls) == 2


def test_soft_delete_stores_plain_date(relational, clock):
    habit_id = relational.create_habit("Delete me")
    relational.delete_habit(habit_id)
    row = HabitRow.objects.get(pk=habit_id)
    assert str(row.deleted_at) == "2024-03-01"
    assert row.records.count() == 1


def test_run_query__returns_rows_as_dicts(relational):
    relational.create_habit("Raw")
    rows = relational.run_query("SELECT name, isCritical FROM habits WHERE name = %s", ["Raw"])
    # SQLite hands booleans back as 0/1
    assert rows == [{"name": "Raw", "isCritical": False}]
