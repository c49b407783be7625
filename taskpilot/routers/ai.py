from fastapi import APIRouter, Depends

from taskpilot.core.identity import TenantIdentityDep
from taskpilot.deps import get_settings_service, get_suggestion_service
from taskpilot.models import SuggestionRequest, SuggestionResponse
from taskpilot.services.ai_service import SuggestionService
from taskpilot.services.settings_service import SettingsService

router = APIRouter(prefix="/ai", tags=["ai"])

UNAVAILABLE = "AI service unavailable"


def _to_response(description: str | None) -> SuggestionResponse:
    if not description:
        return SuggestionResponse(description=None, generated=False, message=UNAVAILABLE)
    return SuggestionResponse(description=description, generated=True)


@router.post("/suggest-description", response_model=SuggestionResponse)
async def suggest_description(
    request: SuggestionRequest,
    identity: TenantIdentityDep,
    suggestions: SuggestionService = Depends(get_suggestion_service),
    settings: SettingsService = Depends(get_settings_service),
):
    """Suggest a short description for a task; null when the AI is unavailable"""
    description = await suggestions.generate_task_description(
        request.task_name,
        assigned_to_name=request.assigned_to_name,
        due_date=request.due_date,
        tags=request.tags,
        family_context=await settings.family_context(identity.tenant_id),
    )
    return _to_response(description)


@router.post("/suggest-descriptions", response_model=list[SuggestionResponse])
async def suggest_descriptions(
    requests: list[SuggestionRequest],
    identity: TenantIdentityDep,
    suggestions: SuggestionService = Depends(get_suggestion_service),
    settings: SettingsService = Depends(get_settings_service),
):
    descriptions = await suggestions.generate_batch_descriptions(
        requests, family_context=await settings.family_context(identity.tenant_id)
    )
    return [_to_response(d) for d in descriptions]
