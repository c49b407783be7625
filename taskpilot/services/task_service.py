from datetime import datetime, timezone

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskpilot.cache.decorators import cached_by_tenant, invalidates_tenant
from taskpilot.cache.layer import TenantCache
from taskpilot.core.identity import Identity
from taskpilot.models import ActivityEntry, Task, TaskCreate, TaskResponse, TaskUpdate
from taskpilot.services.activity import append_entry, creation_entry, diff_task_update


class TaskService:
    def __init__(self, db: AsyncSession, cache: TenantCache):
        self.db = db
        self.cache = cache

    async def _get(self, tenant_id: str, task_id: int, for_update: bool = False):
        query = select(Task).where(Task.id == task_id, Task.tenant_id == tenant_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.exec(query)
        return result.first()

    @invalidates_tenant
    async def create_task(self, tenant_id: str, task_data: TaskCreate, actor: Identity):
        task = Task(
            tenant_id=tenant_id,
            owner_sub=actor.sub,
            name=task_data.name,
            description=task_data.description,
            status=task_data.status,
            tags=task_data.tags,
            due_date=task_data.due_date,
            assigned_to_email=task_data.assigned_to_email,
            assigned_to_name=task_data.assigned_to_name if task_data.assigned_to_email else None,
            created_by_email=actor.email,
            created_by_name=actor.display_name,
        )
        append_entry(
            task,
            creation_entry(actor, task.status, task.assigned_to_email, task.assigned_to_name),
        )
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        return task

    @cached_by_tenant
    async def list_tasks(self, tenant_id: str) -> list[dict]:
        query = (
            select(Task)
            .where(Task.tenant_id == tenant_id)
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        result = await self.db.exec(query)
        return [TaskResponse.model_validate(task).model_dump() for task in result.all()]

    async def get_task(self, tenant_id: str, task_id: int):
        return await self._get(tenant_id, task_id)

    async def get_activity(self, tenant_id: str, task_id: int) -> list[ActivityEntry] | None:
        task = await self._get(tenant_id, task_id)
        if not task:
            return None
        return [ActivityEntry.model_validate(entry) for entry in task.activity_log]

    # fields and the ledger entry go out in one UPDATE
    @invalidates_tenant
    async def update_task(
        self, tenant_id: str, task_id: int, task_data: TaskUpdate, actor: Identity
    ):
        task = await self._get(tenant_id, task_id, for_update=True)
        if not task:
            return None

        updates, entry = diff_task_update(task, task_data, actor)
        task.sqlmodel_update(updates)
        append_entry(task, entry)
        task.updated_at = datetime.now(timezone.utc)

        await self.db.commit()
        await self.db.refresh(task)
        return task

    @invalidates_tenant
    async def delete_task(self, tenant_id: str, task_id: int):
        task = await self._get(tenant_id, task_id)
        if not task:
            return False
        await self.db.delete(task)
        await self.db.commit()
        return True
