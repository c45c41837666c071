"""
Date grouping and partitioning of already-fetched reservations and quotes.

Every function here is pure: callers pass the reference date ("today" or
"now") and the viewer's time zone, nothing is read from the clock or
stored between calls.

Timestamps carrying an offset are converted to the viewer's zone before the
calendar date is taken. Naive timestamps are already wall-clock times and
are used as they are.
"""
import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional

from dashboard.core.config_loader import DateLabels
from dashboard.models.records import Attendance, Quote, QuoteStatus, Reservation
from dashboard.models.views import CalendarCell, CalendarMonth, ChartPoint, DayGroup, HistoryPartition


def local_moment(moment: datetime, tz: tzinfo) -> datetime:
    """Wall-clock time of `moment` in `tz`, as a naive datetime."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(tz).replace(tzinfo=None)


def local_date(moment: datetime, tz: tzinfo) -> date:
    return local_moment(moment, tz).date()


def format_time(moment: datetime, tz: tzinfo) -> str:
    return local_moment(moment, tz).strftime("%H:%M")


def format_long_date(day: date, labels: DateLabels) -> str:
    return labels.long_date_format.format(
        weekday=labels.weekday_names[day.weekday()],
        day=day.day,
        month=labels.month_names[day.month - 1],
        year=day.year,
    )


def format_short_date(day: date, labels: DateLabels) -> str:
    return labels.short_date_format.format(
        day=day.day,
        month_short=labels.month_short_names[day.month - 1],
        year=day.year,
    )


def label_for_date(day: date, today: date, labels: DateLabels) -> str:
    if day == today:
        return labels.today
    if day == today + timedelta(days=1):
        return labels.tomorrow
    return format_long_date(day, labels)


def _bucket_by_local_date(reservations: Iterable[Reservation], tz: tzinfo) -> Dict[date, List[Reservation]]:
    buckets: Dict[date, List[Reservation]] = defaultdict(list)
    for reservation in reservations:
        if reservation.scheduled_at is None:
            continue
        buckets[local_date(reservation.scheduled_at, tz)].append(reservation)

    # sorted() is stable: identical timestamps keep fetch order
    for day, items in buckets.items():
        buckets[day] = sorted(items, key=lambda r: local_moment(r.scheduled_at, tz))
    return buckets


def build_calendar_month(
    year: int,
    month: int,
    reservations: Iterable[Reservation],
    today: date,
    tz: tzinfo,
    labels: DateLabels,
) -> CalendarMonth:
    """
    Monday-first month grid. Placeholder cells pad the first and last week
    so the grid is always made of complete weeks.
    """
    leading, days_in_month = calendar.monthrange(year, month)
    trailing = -(leading + days_in_month) % 7

    month_start = date(year, month, 1)
    month_end = date(year, month, days_in_month)
    buckets = _bucket_by_local_date(
        (r for r in reservations
         if r.scheduled_at is not None and month_start <= local_date(r.scheduled_at, tz) <= month_end),
        tz,
    )

    cells = [CalendarCell() for _ in range(leading)]
    for day_number in range(1, days_in_month + 1):
        day = date(year, month, day_number)
        cells.append(CalendarCell(
            date=day,
            reservations=buckets.get(day, []),
            is_today=day == today,
            is_past=day < today,
        ))
    cells.extend(CalendarCell() for _ in range(trailing))

    return CalendarMonth(
        year=year,
        month=month,
        title=labels.month_title_format.format(month=labels.month_names[month - 1], year=year),
        week_days=list(labels.weekday_short_names),
        cells=cells,
    )


def group_upcoming(
    reservations: Iterable[Reservation],
    today: date,
    tz: tzinfo,
    labels: DateLabels,
) -> List[DayGroup]:
    """
    Buckets unresolved reservations by calendar-local date, earliest first.
    Filtering to unresolved records is the store query's job.
    """
    buckets = _bucket_by_local_date(reservations, tz)
    return [
        DayGroup(date=day, label=label_for_date(day, today, labels), reservations=buckets[day])
        for day in sorted(buckets)
    ]


def partition_history(reservations: Iterable[Reservation]) -> HistoryPartition:
    """Splits resolved reservations by their recorded outcome. Unresolved ones land in neither list."""
    attended, missed = [], []
    for reservation in reservations:
        if reservation.attendance is Attendance.ATTENDED:
            attended.append(reservation)
        elif reservation.attendance is Attendance.MISSED:
            missed.append(reservation)
    return HistoryPartition(attended=attended, missed=missed)


def is_overdue(reservation: Reservation, now: datetime, tz: tzinfo, grace: timedelta) -> bool:
    """True when an unresolved reservation started more than `grace` ago."""
    if reservation.attendance is not Attendance.UNRESOLVED or reservation.scheduled_at is None:
        return False
    return local_moment(reservation.scheduled_at, tz) < local_moment(now, tz) - grace


def count_by_status(quotes: Iterable[Quote]) -> Dict[str, int]:
    counts = {status.value: 0 for status in QuoteStatus}
    for quote in quotes:
        # Unknown statuses get a key of their own
        counts[quote.status_value] = counts.get(quote.status_value, 0) + 1
    return counts


def reservations_per_day(
    reservations: Iterable[Reservation],
    start: date,
    days: int,
    tz: tzinfo,
    labels: DateLabels,
) -> List[ChartPoint]:
    """Reservation count for each of `days` consecutive local dates from `start`."""
    counts: Dict[date, int] = defaultdict(int)
    for reservation in reservations:
        if reservation.scheduled_at is not None:
            counts[local_date(reservation.scheduled_at, tz)] += 1

    points = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        points.append(ChartPoint(date=day, label=format_short_date(day, labels), reservations=counts.get(day, 0)))
    return points


def count_upcoming(reservations: Iterable[Reservation], today: date, tz: tzinfo) -> int:
    """Unresolved reservations scheduled today or later."""
    return sum(
        1 for r in reservations
        if r.attendance is Attendance.UNRESOLVED
        and r.scheduled_at is not None
        and local_date(r.scheduled_at, tz) >= today
    )


def attendance_rate(partition: HistoryPartition) -> Optional[float]:
    resolved = partition.attended_count + partition.missed_count
    if not resolved:
        return None
    return round(partition.attended_count / resolved, 4)
