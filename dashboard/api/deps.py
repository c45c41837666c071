from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import Depends, Query, Request

from dashboard.core.config import settings
from dashboard.core.config_loader import DashboardConfig, get_dashboard_config
from dashboard.core.exceptions import DashboardError, FormValidationError
from dashboard.core.security import SessionContext, SessionRegistry, get_session_context
from dashboard.services.auth_service import AuthService
from dashboard.services.db_service import DBService


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_auth_service(registry: SessionRegistry = Depends(get_registry)) -> AuthService:
    return AuthService(registry)


def get_store(context: SessionContext = Depends(get_session_context)) -> DBService:
    """Owner-scoped store for the signed-in business account."""
    if context.profile is None:
        raise DashboardError("No business profile is linked to this account.", status_code=403)
    return DBService(context.client, context.profile.id)


def get_viewer_timezone(tz: Optional[str] = Query(None, description="IANA time zone of the viewer")) -> ZoneInfo:
    name = tz or settings.TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise FormValidationError(f"Unknown time zone '{name}'", field="tz", form={"tz": tz})


def get_config() -> DashboardConfig:
    return get_dashboard_config()


def get_now(tz: ZoneInfo = Depends(get_viewer_timezone)) -> datetime:
    """Current time in the viewer's zone."""
    return datetime.now(tz)
