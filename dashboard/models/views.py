import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from dashboard.core.config_loader import Badge
from dashboard.models.records import Quote, Reservation

# --- Grouper output ---

class CalendarCell(BaseModel):
    # None for the placeholders padding the first and last week
    date: Optional[datetime.date] = None
    reservations: List[Reservation] = Field(default_factory=list)
    is_today: bool = False
    is_past: bool = False


class CalendarMonth(BaseModel):
    year: int
    month: int
    title: str
    week_days: List[str]
    cells: List[CalendarCell]


class DayGroup(BaseModel):
    date: datetime.date
    label: str
    reservations: List[Reservation]


class HistoryPartition(BaseModel):
    attended: List[Reservation]
    missed: List[Reservation]

    @property
    def attended_count(self) -> int:
        return len(self.attended)

    @property
    def missed_count(self) -> int:
        return len(self.missed)


class ChartPoint(BaseModel):
    date: datetime.date
    label: str
    reservations: int


# --- API responses ---

class ReservationView(BaseModel):
    reservation: Reservation
    time_label: Optional[str] = None
    badge: Badge
    overdue: bool = False


class UpcomingGroupView(BaseModel):
    date: datetime.date
    label: str
    items: List[ReservationView]


class UpcomingResponse(BaseModel):
    total: int
    groups: List[UpcomingGroupView]


class HistoryResponse(BaseModel):
    attended_count: int
    missed_count: int
    attended: List[ReservationView]
    missed: List[ReservationView]


class QuoteView(BaseModel):
    quote: Quote
    badge: Badge


class QuoteListResponse(BaseModel):
    total: int
    status_counts: Dict[str, int]
    items: List[QuoteView]


class DashboardSummary(BaseModel):
    range: str
    total_reservations: int
    upcoming_reservations: int
    pending_quotes: int
    chart: List[ChartPoint]
    recent_quotes: List[QuoteView]


class AnalyticsResponse(BaseModel):
    attended_count: int
    missed_count: int
    unresolved_count: int
    attendance_rate: Optional[float] = None
    status_counts: Dict[str, int]
