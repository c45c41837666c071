from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query

from dashboard.api.deps import get_config, get_now, get_store, get_viewer_timezone
from dashboard.core.config_loader import DashboardConfig
from dashboard.models.auth_models import MessageResponse
from dashboard.models.records import AttendanceUpdate, Reservation, ReservationCreate
from dashboard.models.views import ReservationView, UpcomingResponse
from dashboard.services.db_service import DBService
from dashboard.services.grouping import group_upcoming
from dashboard.services.presenter import reservation_view, upcoming_group_view

router = APIRouter()


@router.get("", response_model=UpcomingResponse)
async def list_upcoming(
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    now: datetime = Depends(get_now),
):
    """Unresolved reservations grouped by day, earliest first."""
    reservations = await store.list_reservations(resolved=False, ascending=True)
    groups = group_upcoming(reservations, now.date(), tz, config.labels)
    return UpcomingResponse(
        total=sum(len(group.reservations) for group in groups),
        groups=[upcoming_group_view(group, config, tz, now) for group in groups],
    )


@router.get("/all", response_model=List[Reservation])
async def list_all(
    before: Optional[datetime] = Query(None, description="Only reservations scheduled before this moment"),
    store: DBService = Depends(get_store),
):
    """Every reservation of the account, unscheduled ones included unless `before` is given."""
    return await store.list_reservations(ascending=True, before=before)


@router.post("", response_model=Reservation, status_code=201)
async def create_reservation(form: ReservationCreate, store: DBService = Depends(get_store)):
    return await store.create_reservation(form)


@router.get("/{reservation_id}", response_model=ReservationView)
async def get_reservation(
    reservation_id: str,
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    now: datetime = Depends(get_now),
):
    reservation = await store.get_reservation(reservation_id)
    return reservation_view(reservation, config, tz, now)


@router.patch("/{reservation_id}/attendance", response_model=ReservationView)
async def set_attendance(
    reservation_id: str,
    update: AttendanceUpdate,
    store: DBService = Depends(get_store),
    config: DashboardConfig = Depends(get_config),
    tz: ZoneInfo = Depends(get_viewer_timezone),
    now: datetime = Depends(get_now),
):
    reservation = await store.set_attendance(reservation_id, update.attendance)
    return reservation_view(reservation, config, tz, now)


@router.delete("/{reservation_id}", response_model=MessageResponse)
async def delete_reservation(reservation_id: str, store: DBService = Depends(get_store)):
    await store.delete_reservation(reservation_id)
    return MessageResponse(message="Reservation deleted")
