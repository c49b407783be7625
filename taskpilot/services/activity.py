"""
Task activity ledger.

Every task carries an append-only ``activity_log``. Creation writes a single
``created`` entry; every update call appends exactly one more entry whose
``action`` classifies the mutation and whose ``changes`` holds old/new pairs.

Classification of an update:
- status changed            -> ``completed`` (new status ``done``) or ``status_changed``
- assignee email changed    -> ``assigned`` / ``unassigned`` / ``reassigned``
- both in the same update   -> the assignment label wins; both change sets are kept
- nothing trackable changed -> ``updated``

Name and description edits are recorded as ``{from, to}`` pairs but never
affect the label.
"""

from datetime import datetime
from typing import Any, Optional

from taskpilot.core.identity import Identity
from taskpilot.models import ActivityAction, ActivityEntry, Task, TaskUpdate, get_utc_now

UNASSIGNED = "Unassigned"


def describe_assignee(name: Optional[str], email: str) -> str:
    """Human-readable assignee, e.g. ``Alice (alice@example.com)``."""
    return f"{name or email} ({email})"


def _entry(
    action: ActivityAction,
    actor: Identity,
    changes: dict[str, Any],
    timestamp: Optional[datetime] = None,
) -> ActivityEntry:
    return ActivityEntry(
        action=action,
        performed_by=actor.email or actor.sub,
        performed_by_name=actor.display_name or actor.sub,
        timestamp=timestamp or get_utc_now(),
        changes=changes,
    )


def creation_entry(
    actor: Identity,
    status: str,
    assignee_email: Optional[str],
    assignee_name: Optional[str],
    timestamp: Optional[datetime] = None,
) -> ActivityEntry:
    assigned_to = (
        describe_assignee(assignee_name, assignee_email) if assignee_email else UNASSIGNED
    )
    return _entry(
        ActivityAction.CREATED,
        actor,
        {"status": status, "assigned_to": assigned_to},
        timestamp,
    )


def classify_assignment(
    old_email: Optional[str],
    old_name: Optional[str],
    new_email: Optional[str],
    new_name: Optional[str],
) -> Optional[tuple[ActivityAction, dict[str, str]]]:
    """Label an assignee change, or None when the email did not change."""
    if old_email == new_email:
        return None
    if not old_email:
        return ActivityAction.ASSIGNED, {"to": describe_assignee(new_name, new_email)}
    if not new_email:
        return ActivityAction.UNASSIGNED, {"from": describe_assignee(old_name, old_email)}
    return ActivityAction.REASSIGNED, {
        "from": describe_assignee(old_name, old_email),
        "to": describe_assignee(new_name, new_email),
    }


def diff_task_update(
    task: Task,
    update: TaskUpdate,
    actor: Identity,
    timestamp: Optional[datetime] = None,
) -> tuple[dict[str, Any], ActivityEntry]:
    """
    Compare an update against the stored task.

    Only fields explicitly present in ``update`` are considered.

    Returns:
        (field values to write, ledger entry to append)
    """
    data = update.model_dump(exclude_unset=True)
    updates: dict[str, Any] = {}
    changes: dict[str, Any] = {}
    action = ActivityAction.UPDATED

    for name in ("name", "description"):
        new = data.get(name)
        if new is None:
            continue
        old = getattr(task, name)
        if new != old:
            updates[name] = new
            changes[name] = {"from": old, "to": new}

    if data.get("tags") is not None:
        updates["tags"] = data["tags"]
    if "due_date" in data:
        updates["due_date"] = data["due_date"]

    new_status = data.get("status")
    if new_status is not None and new_status != task.status:
        updates["status"] = new_status
        changes["status"] = {"from": task.status, "to": new_status}
        action = (
            ActivityAction.COMPLETED if new_status == "done" else ActivityAction.STATUS_CHANGED
        )

    if "assigned_to_email" in data:
        new_email = data["assigned_to_email"]
        new_name = data.get("assigned_to_name") if new_email else None
        assignment = classify_assignment(
            task.assigned_to_email, task.assigned_to_name, new_email, new_name
        )
        if assignment is not None:
            # assignment label takes precedence over a status label
            action, changes["assigned_to"] = assignment
            updates["assigned_to_email"] = new_email
            updates["assigned_to_name"] = new_name

    # Renaming the current assignee without changing the email; a null name is ignored.
    if (
        data.get("assigned_to_name")
        and "assigned_to_email" not in updates
        and task.assigned_to_email
        and data["assigned_to_name"] != task.assigned_to_name
    ):
        updates["assigned_to_name"] = data["assigned_to_name"]

    return updates, _entry(action, actor, changes, timestamp)


def append_entry(task: Task, entry: ActivityEntry):
    """Append to the task's log. A new list is assigned so the JSON column is flushed."""
    task.activity_log = [*(task.activity_log or []), entry.model_dump(mode="json")]
