import time
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from dashboard.api.deps import get_auth_service
from dashboard.core.config import settings
from dashboard.core.exceptions import AuthenticationError
from dashboard.core.security import (
    SessionContext,
    extract_access_token,
    get_optional_session_context,
    get_session_context,
)
from dashboard.models.auth_models import (
    AuthSession,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    SignupResult,
)
from dashboard.services.auth_service import AuthService

router = APIRouter()


def _set_session_cookies(response: Response, session: AuthSession) -> None:
    max_age = None
    if session.expires_at:
        max_age = max(int(session.expires_at - time.time()), 0)
    options = dict(httponly=True, secure=settings.COOKIE_SECURE, samesite="lax", path="/")
    response.set_cookie(settings.ACCESS_COOKIE_NAME, session.access_token, max_age=max_age, **options)
    if session.refresh_token:
        response.set_cookie(settings.REFRESH_COOKIE_NAME, session.refresh_token, **options)


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(settings.ACCESS_COOKIE_NAME, path="/")
    response.delete_cookie(settings.REFRESH_COOKIE_NAME, path="/")


@router.post("/login", response_model=AuthSession)
async def login(form: LoginRequest, response: Response, auth_service: AuthService = Depends(get_auth_service)):
    session, _ = await auth_service.login(form)
    _set_session_cookies(response, session)
    return session


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    context: Optional[SessionContext] = Depends(get_optional_session_context),
    auth_service: AuthService = Depends(get_auth_service),
):
    # A revoked or expired token still gets its cookies cleared
    if context is not None:
        await auth_service.logout(context)
    _clear_session_cookies(response)
    return MessageResponse(message="Signed out")


@router.post("/refresh", response_model=AuthSession)
async def refresh(request: Request, response: Response, auth_service: AuthService = Depends(get_auth_service)):
    """New access token from the refresh cookie; both cookies are rewritten."""
    try:
        session, _ = await auth_service.refresh(
            request.cookies.get(settings.REFRESH_COOKIE_NAME),
            previous_token=extract_access_token(request),
        )
    except AuthenticationError as e:
        expired = JSONResponse(status_code=401, content={"message": e.message})
        _clear_session_cookies(expired)
        return expired
    _set_session_cookies(response, session)
    return session


@router.post("/signup", response_model=SignupResult)
async def signup(form: SignupRequest, auth_service: AuthService = Depends(get_auth_service)):
    return await auth_service.signup(form)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(form: ForgotPasswordRequest, auth_service: AuthService = Depends(get_auth_service)):
    await auth_service.forgot_password(form)
    return MessageResponse(message="If this address has an account, a reset link is on its way.")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    form: ResetPasswordRequest,
    request: Request,
    context: SessionContext = Depends(get_session_context),
    auth_service: AuthService = Depends(get_auth_service),
):
    refresh_token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    await auth_service.reset_password(context, refresh_token, form)
    return MessageResponse(message="Password updated")
