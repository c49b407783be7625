from fastapi import APIRouter, Depends, HTTPException, Query, status

from taskpilot.core.identity import TenantIdentityDep
from taskpilot.deps import get_task_service
from taskpilot.models import ActivityEntry, TaskCreate, TaskResponse, TaskStatus, TaskUpdate
from taskpilot.services.task_service import TaskService

router = APIRouter(prefix="/tasks", tags=["tasks"])

NOT_FOUND = "Task not found or access denied"


@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    identity: TenantIdentityDep,
    service: TaskService = Depends(get_task_service),
):
    """Create a task for the family. Any member can assign it to anyone."""
    if not identity.email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User email is required",
        )
    return await service.create_task(identity.tenant_id, task_data, identity)


@router.get("/", response_model=list[TaskResponse])
async def get_tasks(
    identity: TenantIdentityDep,
    status_filter: TaskStatus | None = Query(default=None, alias="status"),
    assigned_to_email: str | None = None,
    service: TaskService = Depends(get_task_service),
):
    """All tasks of the family, newest first."""
    tasks = await service.list_tasks(identity.tenant_id)
    if status_filter is not None:
        tasks = [t for t in tasks if t["status"] == status_filter]
    if assigned_to_email is not None:
        tasks = [t for t in tasks if t["assigned_to_email"] == assigned_to_email]
    return tasks


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: int,
    identity: TenantIdentityDep,
    service: TaskService = Depends(get_task_service),
):
    """Get a specific task by ID"""

    task = await service.get_task(identity.tenant_id, task_id)

    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return task


@router.get("/{task_id}/activity", response_model=list[ActivityEntry])
async def get_task_activity(
    task_id: int,
    identity: TenantIdentityDep,
    service: TaskService = Depends(get_task_service),
):
    """History of a task, oldest entry first"""
    activity = await service.get_activity(identity.tenant_id, task_id)
    if activity is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return activity


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    task_data: TaskUpdate,
    identity: TenantIdentityDep,
    service: TaskService = Depends(get_task_service),
):
    task = await service.update_task(identity.tenant_id, task_id, task_data, identity)
    if not task:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    identity: TenantIdentityDep,
    service: TaskService = Depends(get_task_service),
):
    """Delete a task"""
    result = await service.delete_task(identity.tenant_id, task_id)

    if not result:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND)
