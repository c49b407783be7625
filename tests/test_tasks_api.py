from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy.exc import OperationalError

from taskpilot.deps import get_task_service


def _create(client, headers, **body) -> dict:
    payload = {"name": "Pick up groceries", **body}
    response = client.post("/tasks/", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


def test_create_task_writes_single_created_entry(client, alice) -> None:
    task = _create(
        client,
        alice,
        description="  Get milk, eggs, and bread  ",
        assigned_to_email="bob@example.com",
        assigned_to_name="Bob",
    )

    assert task["tenant_id"] == "tenant-test-a"
    assert task["owner_sub"] == "auth0|alice"
    assert task["description"] == "Get milk, eggs, and bread"
    assert task["status"] == "todo"
    assert task["created_by_email"] == "alice@example.com"
    assert task["created_by_name"] == "Alice"
    assert len(task["activity_log"]) == 1

    entry = task["activity_log"][0]
    assert entry["action"] == "created"
    assert entry["performed_by"] == "alice@example.com"
    assert entry["performed_by_name"] == "Alice"
    assert entry["changes"] == {"status": "todo", "assigned_to": "Bob (bob@example.com)"}


def test_create_task_requires_name(client, alice) -> None:
    response = client.post("/tasks/", json={"name": "   "}, headers=alice)
    assert response.status_code == 422

    response = client.post("/tasks/", json={"description": "no name"}, headers=alice)
    assert response.status_code == 422


def test_create_task_requires_creator_email(client, auth_headers) -> None:
    headers = auth_headers(email=None, name="No Email")

    response = client.post("/tasks/", json={"name": "Walk the dog"}, headers=headers)

    assert response.status_code == 400
    assert response.json()["detail"] == "User email is required"


def test_invalid_status_is_rejected(client, alice) -> None:
    response = client.post("/tasks/", json={"name": "Laundry", "status": "blocked"}, headers=alice)
    assert response.status_code == 422


def test_list_returns_family_tasks_newest_first(client, alice, bob) -> None:
    first = _create(client, alice, name="First")
    second = _create(client, bob, name="Second")

    response = client.get("/tasks/", headers=alice)

    assert response.status_code == 200
    assert [t["id"] for t in response.json()] == [second["id"], first["id"]]


def test_list_filters_by_status_and_assignee(client, alice) -> None:
    _create(client, alice, name="Mine", assigned_to_email="alice@example.com", assigned_to_name="Alice")
    done = _create(client, alice, name="Done already", status="done")

    by_status = client.get("/tasks/", params={"status": "done"}, headers=alice).json()
    by_assignee = client.get(
        "/tasks/", params={"assigned_to_email": "alice@example.com"}, headers=alice
    ).json()

    assert [t["id"] for t in by_status] == [done["id"]]
    assert [t["name"] for t in by_assignee] == ["Mine"]


def test_list_read_populates_tenant_cache(client, app, alice) -> None:
    _create(client, alice)
    assert app.state.task_cache.get("tenant-test-a") is None

    client.get("/tasks/", headers=alice)

    cached = app.state.task_cache.get("tenant-test-a")
    assert cached is not None
    assert len(cached) == 1


def test_create_after_cached_list_is_visible_on_next_read(client, alice) -> None:
    _create(client, alice, name="Existing")
    assert len(client.get("/tasks/", headers=alice).json()) == 1

    new_task = _create(client, alice, name="Brand new")
    tasks = client.get("/tasks/", headers=alice).json()

    assert new_task["id"] in [t["id"] for t in tasks]
    assert len(tasks) == 2


def test_update_and_delete_invalidate_cached_list(client, app, alice) -> None:
    task = _create(client, alice)
    client.get("/tasks/", headers=alice)

    client.put(f"/tasks/{task['id']}", json={"status": "done"}, headers=alice)
    assert app.state.task_cache.get("tenant-test-a") is None
    assert client.get("/tasks/", headers=alice).json()[0]["status"] == "done"

    client.delete(f"/tasks/{task['id']}", headers=alice)
    assert client.get("/tasks/", headers=alice).json() == []


def test_write_for_one_family_keeps_other_family_cache(client, app, alice, other_family) -> None:
    _create(client, other_family, name="Family B task")
    client.get("/tasks/", headers=other_family)

    _create(client, alice, name="Family A task")

    assert app.state.task_cache.get("tenant-test-b") is not None


def test_update_status_to_done_appends_completed_entry(client, alice, bob) -> None:
    task = _create(client, alice)

    response = client.put(f"/tasks/{task['id']}", json={"status": "done"}, headers=bob)

    assert response.status_code == 200
    log = response.json()["activity_log"]
    assert [e["action"] for e in log] == ["created", "completed"]
    assert log[1]["performed_by"] == "bob@example.com"
    assert log[1]["changes"] == {"status": {"from": "todo", "to": "done"}}


def test_assignment_lifecycle_is_recorded(client, alice) -> None:
    task = _create(client, alice)
    url = f"/tasks/{task['id']}"

    client.put(url, json={"assigned_to_email": "alice@example.com", "assigned_to_name": "Alice"}, headers=alice)
    client.put(url, json={"assigned_to_email": "bob@example.com", "assigned_to_name": "Bob"}, headers=alice)
    client.put(url, json={"assigned_to_email": None}, headers=alice)
    client.put(url, json={"description": "Only the description"}, headers=alice)

    response = client.get(f"{url}/activity", headers=alice)

    assert response.status_code == 200
    log = response.json()
    assert [e["action"] for e in log] == [
        "created",
        "assigned",
        "reassigned",
        "unassigned",
        "updated",
    ]
    assert log[1]["changes"] == {"assigned_to": {"to": "Alice (alice@example.com)"}}
    assert log[2]["changes"] == {
        "assigned_to": {"from": "Alice (alice@example.com)", "to": "Bob (bob@example.com)"}
    }
    assert log[3]["changes"] == {"assigned_to": {"from": "Bob (bob@example.com)"}}

    task = client.get(url, headers=alice).json()
    assert task["assigned_to_email"] is None
    assert task["assigned_to_name"] is None
    assert task["description"] == "Only the description"


def test_other_family_cannot_see_or_touch_task(client, alice, other_family) -> None:
    task = _create(client, alice)
    url = f"/tasks/{task['id']}"

    assert client.get(url, headers=other_family).status_code == 404
    assert client.get(f"{url}/activity", headers=other_family).status_code == 404
    assert client.put(url, json={"status": "done"}, headers=other_family).status_code == 404
    assert client.delete(url, headers=other_family).status_code == 404
    assert client.get("/tasks/", headers=other_family).json() == []

    # untouched for the owning family
    unchanged = client.get(url, headers=alice).json()
    assert unchanged["status"] == "todo"
    assert len(unchanged["activity_log"]) == 1


def test_missing_and_foreign_tasks_look_the_same(client, alice, other_family) -> None:
    task = _create(client, alice)

    foreign = client.get(f"/tasks/{task['id']}", headers=other_family)
    missing = client.get("/tasks/9999", headers=other_family)

    assert foreign.status_code == missing.status_code == 404
    assert foreign.json() == missing.json() == {"detail": "Task not found or access denied"}


def test_delete_task(client, alice) -> None:
    task = _create(client, alice)

    assert client.delete(f"/tasks/{task['id']}", headers=alice).status_code == 204
    assert client.get(f"/tasks/{task['id']}", headers=alice).status_code == 404


def test_is_overdue(client, alice) -> None:
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()

    late = _create(client, alice, name="Late", due_date=past)
    on_time = _create(client, alice, name="On time", due_date=future)
    finished = _create(client, alice, name="Finished", due_date=past, status="done")

    assert late["is_overdue"] is True
    assert on_time["is_overdue"] is False
    assert finished["is_overdue"] is False


def test_database_failure_is_a_generic_server_error(client, app, alice) -> None:
    class BrokenTaskService:
        async def list_tasks(self, tenant_id: str):
            raise OperationalError("SELECT", {}, Exception("database is down"))

    app.dependency_overrides[get_task_service] = lambda: BrokenTaskService()
    try:
        response = client.get("/tasks/", headers=alice)
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
