from datetime import datetime
from typing import Literal
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends

from dashboard.api.deps import get_config, get_now, get_store, get_viewer_timezone
from dashboard.core.config_loader import DashboardConfig, Presentation
from dashboard.models.records import Attendance, QuoteStatus
from dashboard.models.views import AnalyticsResponse, DashboardSummary
from dashboard.services.db_service import DBService
from dashboard.services.grouping import (
    attendance_rate,
    count_by_status,
    count_upcoming,
    partition_history,
    reservations_per_day,
)
from dashboard.services.presenter import quote_view

router = APIRouter()

CHART_RANGES = {"7days": 7, "1month": 30, "2months": 60}
RECENT_QUOTES = 3


async def get_summary(
    range: Literal["7days", "1month", "2months"] = "7days",
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    now: datetime = Depends(get_now),
):
    """Home page: reservations per day ahead, latest quotes and headline counts."""
    today = now.date()
    reservations = await store.list_reservations(ascending=False)
    quotes = await store.list_quotes()
    recent = await store.list_quotes(limit=RECENT_QUOTES)

    return DashboardSummary(
        range=range,
        total_reservations=len(reservations),
        upcoming_reservations=count_upcoming(reservations, today, tz),
        pending_quotes=count_by_status(quotes)[QuoteStatus.PENDING.value],
        chart=reservations_per_day(reservations, today, CHART_RANGES[range], tz, config.labels),
        recent_quotes=[quote_view(q, config) for q in recent],
    )


router.get("/dashboard", response_model=DashboardSummary)(get_summary)


@router.get("/analytics", response_model=AnalyticsResponse)
async def get_analytics(store: DBService = Depends(get_store)):
    reservations = await store.list_reservations(ascending=False)
    quotes = await store.list_quotes()
    partition = partition_history(reservations)
    return AnalyticsResponse(
        attended_count=partition.attended_count,
        missed_count=partition.missed_count,
        unresolved_count=sum(1 for r in reservations if r.attendance is Attendance.UNRESOLVED),
        attendance_rate=attendance_rate(partition),
        status_counts=count_by_status(quotes),
    )


@router.get("/presentation", response_model=Presentation)
async def get_presentation(config: DashboardConfig = Depends(get_config)):
    """Shared status -> badge table."""
    return config.presentation
