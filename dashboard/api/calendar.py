from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query

from dashboard.api.deps import get_config, get_now, get_store, get_viewer_timezone
from dashboard.core.config_loader import DashboardConfig
from dashboard.models.views import CalendarMonth
from dashboard.services.db_service import DBService
from dashboard.services.grouping import build_calendar_month

router = APIRouter()


@router.get("", response_model=CalendarMonth)
async def get_month(
    year: Optional[int] = Query(None, ge=1, le=9999),
    month: Optional[int] = Query(None, ge=1, le=12),
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    now: datetime = Depends(get_now),
):
    """Monday-first month grid; defaults to the viewer's current month."""
    today = now.date()
    reservations = await store.list_reservations(ascending=True)
    return build_calendar_month(
        year or today.year,
        month or today.month,
        reservations,
        today,
        tz,
        config.labels,
    )
