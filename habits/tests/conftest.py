import uuid
from datetime import datetime, timedelta, timezone as dt_timezone

import pytest
from django.apps import apps
from django.core.cache.backends.locmem import LocMemCache
from django.utils import timezone

from habits.backends import KeyValueBackend, RelationalBackend
from habits.repository import HabitRepository
from habits.services.habit_data import HabitDataService

DAY_1 = datetime(2024, 3, 1, 9, 0, tzinfo=dt_timezone.utc)


class Clock:
    """Stands in for django.utils.timezone.now so tests can move between days."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def today(self) -> str:
        return self.now.date().isoformat()


@pytest.fixture(autouse=True)
def _isolated_settings(settings):
    settings.TIME_ZONE = "UTC"
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"},
        "habits": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": f"habits-{uuid.uuid4()}",
            "TIMEOUT": None,
        },
    }


@pytest.fixture()
def clock(monkeypatch):
    c = Clock(DAY_1)
    monkeypatch.setattr(timezone, "now", c)
    return c


@pytest.fixture()
def kv_store():
    store = LocMemCache(f"habits-test-{uuid.uuid4()}", {"timeout": None})
    yield store
    store.clear()


@pytest.fixture(params=["relational", "keyvalue"])
def backend(request, clock, kv_store):
    if request.param == "relational":
        request.getfixturevalue("db")
        b = RelationalBackend()
    else:
        b = KeyValueBackend(store=kv_store)
    b.open()
    yield b
    b.close()


@pytest.fixture()
def service(backend):
    return HabitDataService(HabitRepository(backend))


@pytest.fixture()
def app_service(settings, db, clock):
    """The app-level service the GraphQL view uses, rebuilt for each test."""
    settings.HABITS = {"BACKEND": "relational"}
    config = apps.get_app_config("habits")
    config.reset_service()
    yield config.get_service()
    config.reset_service()
