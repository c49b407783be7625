from fastapi import APIRouter, Depends, HTTPException, status

from taskpilot.core.identity import TenantIdentityDep
from taskpilot.deps import get_project_service
from taskpilot.models import ProjectCreate, ProjectResponse, ProjectUpdate
from taskpilot.services.project_service import ProjectService

router = APIRouter(prefix="/projects", tags=["projects"])

NOT_FOUND = "Project not found or access denied"


@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    project_data: ProjectCreate,
    identity: TenantIdentityDep,
    service: ProjectService = Depends(get_project_service),
):
    """Create a new project"""
    return await service.create_project(identity.tenant_id, project_data, identity.sub)


@router.get("/", response_model=list[ProjectResponse])
async def get_projects(
    identity: TenantIdentityDep,
    service: ProjectService = Depends(get_project_service),
):
    return await service.list_projects(identity.tenant_id)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    identity: TenantIdentityDep,
    service: ProjectService = Depends(get_project_service),
):
    project = await service.get_project(identity.tenant_id, project_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return project


@router.put("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    project_data: ProjectUpdate,
    identity: TenantIdentityDep,
    service: ProjectService = Depends(get_project_service),
):
    project = await service.update_project(identity.tenant_id, project_id, project_data)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return project


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    identity: TenantIdentityDep,
    service: ProjectService = Depends(get_project_service),
):
    """Delete a project"""
    if not await service.delete_project(identity.tenant_id, project_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
