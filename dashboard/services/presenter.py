from datetime import datetime, timedelta, tzinfo
from typing import Iterable, List, Optional

from dashboard.core.config import settings
from dashboard.core.config_loader import DashboardConfig, get_attendance_badge, get_status_badge
from dashboard.models.records import Quote, Reservation
from dashboard.models.views import DayGroup, QuoteView, ReservationView, UpcomingGroupView
from dashboard.services.grouping import format_time, is_overdue


def reservation_view(
    reservation: Reservation,
    config: DashboardConfig,
    tz: tzinfo,
    now: Optional[datetime] = None,
) -> ReservationView:
    overdue = False
    if now is not None:
        overdue = is_overdue(reservation, now, tz, timedelta(minutes=settings.OVERDUE_GRACE_MINUTES))
    return ReservationView(
        reservation=reservation,
        time_label=format_time(reservation.scheduled_at, tz) if reservation.scheduled_at else None,
        badge=get_attendance_badge(config, reservation.attendance.value),
        overdue=overdue,
    )


def reservation_views(reservations: Iterable[Reservation], config: DashboardConfig, tz: tzinfo) -> List[ReservationView]:
    return [reservation_view(r, config, tz) for r in reservations]


def upcoming_group_view(group: DayGroup, config: DashboardConfig, tz: tzinfo, now: datetime) -> UpcomingGroupView:
    return UpcomingGroupView(
        date=group.date,
        label=group.label,
        items=[reservation_view(r, config, tz, now) for r in group.reservations],
    )


def quote_view(quote: Quote, config: DashboardConfig) -> QuoteView:
    return QuoteView(quote=quote, badge=get_status_badge(config, quote.status_value))
