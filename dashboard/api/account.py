from fastapi import APIRouter, Depends

from dashboard.api.deps import get_auth_service, get_registry, get_store
from dashboard.core.exceptions import RecordNotFoundError
from dashboard.core.security import SessionContext, SessionRegistry, get_session_context
from dashboard.models.auth_models import MessageResponse, PasswordChangeRequest
from dashboard.models.records import ProfileUpdate, UserProfile
from dashboard.services.auth_service import AuthService
from dashboard.services.db_service import DBService

router = APIRouter()


@router.get("/profile", response_model=UserProfile)
async def get_profile(context: SessionContext = Depends(get_session_context)):
    if context.profile is None:
        raise RecordNotFoundError("Profile not found", back="/")
    return context.profile


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    form: ProfileUpdate,
    context: SessionContext = Depends(get_session_context),
    store: DBService = Depends(get_store),
    registry: SessionRegistry = Depends(get_registry),
):
    profile = await store.update_profile(form)
    registry.update_profile(context.access_token, profile)
    return profile


@router.post("/password", response_model=MessageResponse)
async def change_password(
    form: PasswordChangeRequest,
    context: SessionContext = Depends(get_session_context),
    auth_service: AuthService = Depends(get_auth_service),
):
    await auth_service.change_password(context, form)
    return MessageResponse(message="Password updated")
