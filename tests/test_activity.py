from __future__ import annotations

from datetime import datetime, timezone

from taskpilot.core.identity import Identity
from taskpilot.models import ActivityAction, Task, TaskUpdate
from taskpilot.services.activity import (
    append_entry,
    classify_assignment,
    creation_entry,
    describe_assignee,
    diff_task_update,
)

ACTOR = Identity(
    sub="auth0|dad", email="dad@family.com", name="Dad", tenant_id="tenant-test-a"
)
ALICE = "Alice (alice@example.com)"
BOB = "Bob (bob@example.com)"


def _task(**overrides) -> Task:
    fields = dict(
        id=1,
        tenant_id="tenant-test-a",
        owner_sub="auth0|dad",
        name="Pick up groceries",
        description="Milk and eggs",
        status="todo",
        tags=[],
        assigned_to_email=None,
        assigned_to_name=None,
        created_by_email="dad@family.com",
        created_by_name="Dad",
        activity_log=[],
    )
    fields.update(overrides)
    return Task(**fields)


def _assigned_to_alice() -> Task:
    return _task(assigned_to_email="alice@example.com", assigned_to_name="Alice")


def test_describe_assignee_falls_back_to_email() -> None:
    assert describe_assignee("Alice", "alice@example.com") == ALICE
    assert describe_assignee(None, "alice@example.com") == "alice@example.com (alice@example.com)"


def test_creation_entry_for_unassigned_task() -> None:
    entry = creation_entry(ACTOR, "todo", None, None)

    assert entry.action == ActivityAction.CREATED
    assert entry.performed_by == "dad@family.com"
    assert entry.performed_by_name == "Dad"
    assert entry.changes == {"status": "todo", "assigned_to": "Unassigned"}


def test_creation_entry_for_assigned_task() -> None:
    entry = creation_entry(ACTOR, "in-progress", "alice@example.com", "Alice")

    assert entry.changes == {"status": "in-progress", "assigned_to": ALICE}


def test_status_todo_to_done_is_completed() -> None:
    updates, entry = diff_task_update(_task(), TaskUpdate(status="done"), ACTOR)

    assert entry.action == ActivityAction.COMPLETED
    assert entry.changes == {"status": {"from": "todo", "to": "done"}}
    assert updates == {"status": "done"}


def test_status_change_not_to_done_is_status_changed() -> None:
    _, entry = diff_task_update(_task(), TaskUpdate(status="in-progress"), ACTOR)

    assert entry.action == ActivityAction.STATUS_CHANGED
    assert entry.changes == {"status": {"from": "todo", "to": "in-progress"}}


def test_reopening_a_done_task_is_allowed() -> None:
    _, entry = diff_task_update(_task(status="done"), TaskUpdate(status="todo"), ACTOR)

    assert entry.action == ActivityAction.STATUS_CHANGED
    assert entry.changes["status"] == {"from": "done", "to": "todo"}


def test_same_status_is_not_a_change() -> None:
    updates, entry = diff_task_update(_task(), TaskUpdate(status="todo"), ACTOR)

    assert entry.action == ActivityAction.UPDATED
    assert "status" not in updates
    assert entry.changes == {}


def test_assigning_unassigned_task() -> None:
    update = TaskUpdate(assigned_to_email="alice@example.com", assigned_to_name="Alice")
    updates, entry = diff_task_update(_task(), update, ACTOR)

    assert entry.action == ActivityAction.ASSIGNED
    assert entry.changes == {"assigned_to": {"to": ALICE}}
    assert updates == {"assigned_to_email": "alice@example.com", "assigned_to_name": "Alice"}


def test_unassigning_records_only_from() -> None:
    updates, entry = diff_task_update(
        _assigned_to_alice(), TaskUpdate(assigned_to_email=None), ACTOR
    )

    assert entry.action == ActivityAction.UNASSIGNED
    assert entry.changes == {"assigned_to": {"from": ALICE}}
    assert updates == {"assigned_to_email": None, "assigned_to_name": None}


def test_blank_email_unassigns() -> None:
    _, entry = diff_task_update(
        _assigned_to_alice(), TaskUpdate(assigned_to_email="   "), ACTOR
    )

    assert entry.action == ActivityAction.UNASSIGNED


def test_reassigning_records_both_sides() -> None:
    update = TaskUpdate(assigned_to_email="bob@example.com", assigned_to_name="Bob")
    _, entry = diff_task_update(_assigned_to_alice(), update, ACTOR)

    assert entry.action == ActivityAction.REASSIGNED
    assert entry.changes == {"assigned_to": {"from": ALICE, "to": BOB}}


def test_same_assignee_is_not_an_assignment_change() -> None:
    update = TaskUpdate(assigned_to_email="alice@example.com", assigned_to_name="Alice")
    updates, entry = diff_task_update(_assigned_to_alice(), update, ACTOR)

    assert entry.action == ActivityAction.UPDATED
    assert updates == {}


def test_renaming_current_assignee_updates_name_only() -> None:
    update = TaskUpdate(assigned_to_email="alice@example.com", assigned_to_name="Ali")
    updates, entry = diff_task_update(_assigned_to_alice(), update, ACTOR)

    assert entry.action == ActivityAction.UPDATED
    assert updates == {"assigned_to_name": "Ali"}


def test_assignment_label_wins_but_status_is_still_recorded() -> None:
    update = TaskUpdate(
        status="done", assigned_to_email="alice@example.com", assigned_to_name="Alice"
    )
    updates, entry = diff_task_update(_task(), update, ACTOR)

    assert entry.action == ActivityAction.ASSIGNED
    assert entry.changes == {
        "status": {"from": "todo", "to": "done"},
        "assigned_to": {"to": ALICE},
    }
    assert updates["status"] == "done"
    assert updates["assigned_to_email"] == "alice@example.com"


def test_description_only_change_is_updated() -> None:
    updates, entry = diff_task_update(
        _task(), TaskUpdate(description="Milk, eggs and bread"), ACTOR
    )

    assert entry.action == ActivityAction.UPDATED
    assert entry.changes == {
        "description": {"from": "Milk and eggs", "to": "Milk, eggs and bread"}
    }
    assert updates == {"description": "Milk, eggs and bread"}


def test_empty_update_still_produces_an_entry() -> None:
    updates, entry = diff_task_update(_task(), TaskUpdate(), ACTOR)

    assert updates == {}
    assert entry.action == ActivityAction.UPDATED
    assert entry.changes == {}


def test_due_date_and_tags_are_applied_without_classification() -> None:
    due = datetime(2026, 11, 1, 17, 0, tzinfo=timezone.utc)
    updates, entry = diff_task_update(_task(), TaskUpdate(due_date=due, tags=["school"]), ACTOR)

    assert updates == {"due_date": due, "tags": ["school"]}
    assert entry.action == ActivityAction.UPDATED


def test_classify_assignment_ignores_identical_emails() -> None:
    assert classify_assignment("a@x.com", "A", "a@x.com", "Someone else") is None


def test_append_entry_keeps_history_in_order() -> None:
    task = _task()
    append_entry(task, creation_entry(ACTOR, "todo", None, None))
    original_log = task.activity_log

    _, entry = diff_task_update(task, TaskUpdate(status="done"), ACTOR)
    append_entry(task, entry)

    assert [e["action"] for e in task.activity_log] == ["created", "completed"]
    # a fresh list, so the JSON column is marked dirty
    assert task.activity_log is not original_log
    assert original_log == task.activity_log[:1]
    assert isinstance(task.activity_log[1]["timestamp"], str)


def test_null_or_blank_name_keeps_current_assignee_name() -> None:
    for update in (
        TaskUpdate(assigned_to_name=None),
        TaskUpdate(assigned_to_email="alice@example.com", assigned_to_name="  "),
    ):
        updates, entry = diff_task_update(_assigned_to_alice(), update, ACTOR)

        assert updates == {}
        assert entry.action == ActivityAction.UPDATED
        assert entry.changes == {}
