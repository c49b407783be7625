from fastapi import Depends, Request
from sqlmodel.ext.asyncio.session import AsyncSession

from taskpilot.cache.layer import TenantCache
from taskpilot.database import get_db
from taskpilot.services.ai_service import SuggestionService
from taskpilot.services.profile_service import ProfileService
from taskpilot.services.project_service import ProjectService
from taskpilot.services.settings_service import SettingsService
from taskpilot.services.task_service import TaskService


def get_task_cache(request: Request) -> TenantCache:
    return request.app.state.task_cache


def get_project_cache(request: Request) -> TenantCache:
    return request.app.state.project_cache


def get_suggestion_service(request: Request) -> SuggestionService:
    return request.app.state.suggestion_service


def get_task_service(
    db: AsyncSession = Depends(get_db), cache: TenantCache = Depends(get_task_cache)
) -> TaskService:
    return TaskService(db, cache)


def get_project_service(
    db: AsyncSession = Depends(get_db), cache: TenantCache = Depends(get_project_cache)
) -> ProjectService:
    return ProjectService(db, cache)


def get_settings_service(db: AsyncSession = Depends(get_db)) -> SettingsService:
    return SettingsService(db)


def get_profile_service(db: AsyncSession = Depends(get_db)) -> ProfileService:
    return ProfileService(db)
