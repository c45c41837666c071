import base64
import json
import time
from typing import Dict, NamedTuple, Optional

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from pydantic import BaseModel, ConfigDict
from starlette.middleware.base import BaseHTTPMiddleware
from supabase import AsyncClient

from dashboard.core.config import settings
from dashboard.core.exceptions import AuthenticationError, DashboardError
from dashboard.core.logger import logger
from dashboard.models.records import UserProfile
from dashboard.services.db_service import fetch_profile
from dashboard.services.supabase_client import close_client, create_user_client

PUBLIC_PATHS = ("/health", "/docs", "/redoc", "/openapi.json", "/api/auth/refresh")
AUTH_PATHS = ("/api/auth/login", "/api/auth/signup", "/api/auth/forgot-password")


class SessionContext(BaseModel):
    """Everything a request handler knows about the signed-in operator."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    auth_user_id: str
    email: Optional[str] = None
    access_token: str
    profile: Optional[UserProfile] = None
    client: AsyncClient
    expires_at: float


class SessionRegistry:
    """
    Session contexts keyed by access token. Lives on `app.state`; entries
    expire with the token (or after SESSION_CACHE_SECONDS) and are dropped
    on logout. Every removed context has its Supabase client closed.
    """

    def __init__(self, ttl_seconds: int):
        self.ttl_seconds = ttl_seconds
        self._sessions: Dict[str, SessionContext] = {}

    async def get(self, access_token: str) -> Optional[SessionContext]:
        await self.purge()
        return self._sessions.get(access_token)

    async def put(self, context: SessionContext) -> None:
        await self.purge()
        previous = self._sessions.get(context.access_token)
        self._sessions[context.access_token] = context
        if previous is not None and previous.client is not context.client:
            await close_client(previous.client)

    async def drop(self, access_token: str) -> None:
        context = self._sessions.pop(access_token, None)
        if context:
            await close_client(context.client)

    async def purge(self) -> int:
        """Removes expired contexts. Rotated tokens are never looked up again, so this is their only way out."""
        now = time.time()
        expired = [token for token, context in self._sessions.items() if context.expires_at <= now]
        for token in expired:
            await close_client(self._sessions.pop(token).client)
        if expired:
            logger.debug(f"🧹 {len(expired)} expired session(s) purged")
        return len(expired)

    async def close(self) -> None:
        for token in list(self._sessions):
            await self.drop(token)

    def update_profile(self, access_token: str, profile: UserProfile) -> None:
        context = self._sessions.get(access_token)
        if context:
            context.profile = profile

    def __len__(self):
        return len(self._sessions)


def extract_access_token(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.ACCESS_COOKIE_NAME)
    if token:
        return token
    authorization = request.headers.get("Authorization")
    if authorization:
        scheme, _, credentials = authorization.partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials.strip()
    return None


def token_expiry(access_token: str) -> Optional[float]:
    """`exp` claim of a JWT, read without verification (Supabase verifies it)."""
    try:
        payload = access_token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        return float(json.loads(base64.urlsafe_b64decode(payload))["exp"])
    except (IndexError, KeyError, TypeError, ValueError):
        return None


async def open_session(access_token: str, ttl_seconds: int) -> SessionContext:
    """Verifies the token with Supabase Auth and loads the linked business profile."""
    client = await create_user_client(access_token)
    try:
        try:
            response = await client.auth.get_user(access_token)
        except Exception as e:
            logger.warning(f"⚠️ Session rejected by Supabase Auth: {e}")
            raise AuthenticationError("Session expired or invalid")

        user = response.user if response else None
        if not user:
            raise AuthenticationError("Session expired or invalid")

        profile = await fetch_profile(client, user.id)
    except DashboardError:
        await close_client(client)
        raise

    if profile is None:
        logger.warning(f"⚠️ No business profile linked to auth user {user.id}")

    expires_at = time.time() + ttl_seconds
    exp = token_expiry(access_token)
    if exp is not None:
        expires_at = min(expires_at, exp)

    return SessionContext(
        auth_user_id=str(user.id),
        email=user.email,
        access_token=access_token,
        profile=profile,
        client=client,
        expires_at=expires_at,
    )


async def resolve_session(access_token: str, registry: SessionRegistry) -> SessionContext:
    """Cached context for the token, or a freshly verified one."""
    context = await registry.get(access_token)
    if context is None:
        context = await open_session(access_token, registry.ttl_seconds)
        await registry.put(context)
        logger.info(f"🔐 Session opened for {context.email}")
    return context


async def get_session_context(request: Request) -> SessionContext:
    """FastAPI dependency: the session context of the current request."""
    access_token = extract_access_token(request)
    if not access_token:
        raise AuthenticationError()
    return await resolve_session(access_token, request.app.state.sessions)


async def get_optional_session_context(request: Request) -> Optional[SessionContext]:
    """Like `get_session_context`, but a missing or rejected token gives None."""
    try:
        return await get_session_context(request)
    except AuthenticationError:
        return None


# --- Route guard ---

class GuardDecision(NamedTuple):
    action: str  # "allow", "redirect" or "reject"
    location: Optional[str] = None


def _matches(path: str, prefixes) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in prefixes)


def guard_decision(path: str, has_session: bool) -> GuardDecision:
    if _matches(path, PUBLIC_PATHS):
        return GuardDecision("allow")
    if _matches(path, AUTH_PATHS):
        if has_session:
            return GuardDecision("redirect", settings.HOME_PATH)
        return GuardDecision("allow")
    if has_session:
        return GuardDecision("allow")
    if _matches(path, (settings.API_PREFIX,)):
        return GuardDecision("reject")
    if path == settings.LOGIN_PATH:
        return GuardDecision("allow")
    return GuardDecision("redirect", settings.LOGIN_PATH)


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """
    Sends visitors without a session to the login page (401 for API calls)
    and visitors with one away from the auth endpoints.

    Elsewhere a present token is enough to pass; `get_session_context`
    verifies it. On the auth endpoints the token is verified here, so a
    revoked cookie never locks its owner out of the login form.
    """

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        access_token = extract_access_token(request)
        has_session = access_token is not None

        if has_session and _matches(path, AUTH_PATHS):
            try:
                await resolve_session(access_token, request.app.state.sessions)
            except DashboardError as e:
                logger.info(f"🔓 Stale session on {path}: {e.message}")
                has_session = False

        decision = guard_decision(path, has_session)
        if decision.action == "redirect":
            return RedirectResponse(decision.location, status_code=303)
        if decision.action == "reject":
            return JSONResponse(status_code=401, content={"message": "Not authenticated"})
        return await call_next(request)
