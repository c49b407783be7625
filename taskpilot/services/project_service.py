from datetime import datetime, timezone

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskpilot.cache.decorators import cached_by_tenant, invalidates_tenant
from taskpilot.cache.layer import TenantCache
from taskpilot.models import Project, ProjectCreate, ProjectResponse, ProjectUpdate


class ProjectService:
    def __init__(self, db: AsyncSession, cache: TenantCache):
        self.db = db
        self.cache = cache

    async def get_project(self, tenant_id: str, project_id: int):
        result = await self.db.exec(
            select(Project).where(Project.id == project_id, Project.tenant_id == tenant_id)
        )
        return result.first()

    @invalidates_tenant
    async def create_project(self, tenant_id: str, project_data: ProjectCreate, created_by: str):
        project = Project(
            tenant_id=tenant_id,
            name=project_data.name,
            description=project_data.description.strip(),
            created_by=created_by,
        )
        self.db.add(project)
        await self.db.commit()
        await self.db.refresh(project)
        return project

    @cached_by_tenant
    async def list_projects(self, tenant_id: str) -> list[dict]:
        result = await self.db.exec(
            select(Project)
            .where(Project.tenant_id == tenant_id)
            .order_by(Project.created_at.desc(), Project.id.desc())
        )
        return [ProjectResponse.model_validate(p).model_dump() for p in result.all()]

    @invalidates_tenant
    async def update_project(self, tenant_id: str, project_id: int, project_data: ProjectUpdate):
        project = await self.get_project(tenant_id, project_id)
        if not project:
            return None
        project.sqlmodel_update(project_data.model_dump(exclude_unset=True, exclude_none=True))
        project.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(project)
        return project

    @invalidates_tenant
    async def delete_project(self, tenant_id: str, project_id: int):
        project = await self.get_project(tenant_id, project_id)
        if not project:
            return False
        await self.db.delete(project)
        await self.db.commit()
        return True
