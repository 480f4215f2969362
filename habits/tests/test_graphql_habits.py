import json

import pytest
from django.test import Client

pytestmark = pytest.mark.django_db


def _post_graphql(client: Client, query: str, variables=None):
    payload = {"query": query}
    if variables is not None:
        payload["variables"] = variables
    response = client.post("/graphql/", data=payload, content_type="application/json")
    assert response.status_code == 200
    data = json.loads(response.content)
    assert "errors" not in data, data.get("errors")
    return data["data"]


CREATE = """
  mutation($name: String!, $time: String, $critical: Boolean) {
    createHabit(name: $name, scheduledTime: $time, isCritical: $critical) {
      habitId
    }
  }
"""

TODAY = """
  query {
    today
    todayHabits {
      id
      name
      status
      scheduledTime
      isCritical
      durationMinutes
      completionTime
    }
  }
"""


def _create(client, name, time=None, critical=False):
    data = _post_graphql(client, CREATE, {"name": name, "time": time, "critical": critical})
    return data["createHabit"]["habitId"]


def test_graphql_today_habits__empty_store(app_service, client):
    data = _post_graphql(client, TODAY)
    assert data["today"] == "2024-03-01"
    assert data["todayHabits"] == []


def test_graphql_create_and_list__critical_pending_first(app_service, client, clock):
    _create(client, "Stretch", time="05:00")
    clock.advance(minutes=1)
    critical_id = _create(client, "Medication", critical=True)

    habits = _post_graphql(client, TODAY)["todayHabits"]
    assert [h["name"] for h in habits] == ["Medication", "Stretch"]
    assert habits[0]["id"] == critical_id
    assert habits[0]["status"] == "pending"
    assert habits[1]["scheduledTime"] == "05:00"


def test_graphql_mark_done_then_pending(app_service, client):
    habit_id = _create(client, "Exercise", time="06:00", critical=True)

    done = """
      mutation($id: ID!, $m: Int, $at: String) {
        markHabitDone(habitId: $id, durationMinutes: $m, completionTime: $at) { ok }
      }
    """
    assert _post_graphql(client, done, {"id": habit_id, "m": 45, "at": "06:30"})["markHabitDone"]["ok"] is True

    habit = _post_graphql(client, TODAY)["todayHabits"][0]
    assert (habit["status"], habit["durationMinutes"], habit["completionTime"]) == ("done", 45, "06:30")

    pending = """
      mutation($id: ID!) { markHabitPending(habitId: $id) { ok } }
    """
    _post_graphql(client, pending, {"id": habit_id})
    habit = _post_graphql(client, TODAY)["todayHabits"][0]
    assert (habit["status"], habit["durationMinutes"], habit["completionTime"]) == ("pending", None, None)


def test_graphql_update_scheduled_time(app_service, client):
    habit_id = _create(client, "Read")
    mutation = """
      mutation($id: ID!, $time: String) {
        updateHabitScheduledTime(habitId: $id, scheduledTime: $time) { ok }
      }
    """
    _post_graphql(client, mutation, {"id": habit_id, "time": "21:00"})
    assert _post_graphql(client, TODAY)["todayHabits"][0]["scheduledTime"] == "21:00"


def test_graphql_habits_for_date__history_after_delete(app_service, client, clock):
    habit_id = _create(client, "Read")
    clock.advance(days=4)

    delete = """
      mutation($id: ID!) { deleteHabit(habitId: $id) { ok deletedId } }
    """
    data = _post_graphql(client, delete, {"id": habit_id})
    assert data["deleteHabit"] == {"ok": True, "deletedId": habit_id}

    history = """
      query($date: String!) {
        habitsForDate(date: $date) { name status deletedAt }
      }
    """
    before = _post_graphql(client, history, {"date": "2024-03-04"})["habitsForDate"]
    assert before == [{"name": "Read", "status": "pending", "deletedAt": "2024-03-05"}]
    assert _post_graphql(client, history, {"date": "2024-03-05"})["habitsForDate"] == []


def test_graphql_active_habits_and_backend_name(app_service, client):
    _create(client, "Walk")
    data = _post_graphql(client, "query { storageBackend activeHabits { name deletedAt } }")
    assert data["storageBackend"] == "relational"
    assert data["activeHabits"] == [{"name": "Walk", "deletedAt": None}]


def test_graphql_validation_errors_are_reported(app_service, client):
    response = client.post(
        "/graphql/",
        data={"query": CREATE, "variables": {"name": "   "}},
        content_type="application/json",
    )
    payload = json.loads(response.content)
    assert payload.get("data", {}).get("createHabit") is None
    assert "errors" in payload
    assert "must not be empty" in payload["errors"][0]["message"]


def test_graphql_bad_date_is_reported(app_service, client):
    query = """
      query { habitsForDate(date: "03/01/2024") { name } }
    """
    response = client.post("/graphql/", data={"query": query}, content_type="application/json")
    payload = json.loads(response.content)
    assert "errors" in payload
