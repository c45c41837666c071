"""Shared fixtures: record factories and an in-memory store standing in for Supabase."""

from datetime import datetime
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient
from supabase import AsyncClient

from dashboard.api import deps
from dashboard.core.config_loader import load_dashboard_config
from dashboard.core.exceptions import RecordNotFoundError
from dashboard.core.security import SessionContext, get_session_context
from dashboard.main import app
from dashboard.models.records import (
    Attendance,
    ProfileUpdate,
    QuoteCreate,
    QuoteStatus,
    ReservationCreate,
    UserProfile,
    parse_profile,
    parse_quote,
    parse_reservation,
)

OWNER_ID = "owner-1"
PARIS = ZoneInfo("Europe/Paris")
NOW = datetime(2024, 3, 15, 9, 0, tzinfo=PARIS)


def reservation_row(rid, date=None, attended=None, name="Alice", owner=OWNER_ID, **extra) -> Dict:
    """A `reservations` row as Supabase returns it."""
    row = {
        "id": rid,
        "user_id": owner,
        "customer_name": name,
        "customer_phone": "+33 6 00 00 00 00",
        "customer_mail": None,
        "date": date,
        "message": None,
        "attended": attended,
        "created_at": "2024-03-01T08:00:00+00:00",
    }
    row.update(extra)
    return row


def quote_row(qid, status="pending", created_at="2024-03-01T08:00:00+00:00", owner=OWNER_ID, **extra) -> Dict:
    row = {
        "id": qid,
        "user_id": owner,
        "customer_name": f"Customer {qid}",
        "customer_email": f"{qid}@example.com",
        "customer_phone": None,
        "message": "Kitchen renovation",
        "status": status,
        "created_at": created_at,
    }
    row.update(extra)
    return row


def make_reservation(rid, date=None, attended=None, **extra):
    return parse_reservation(reservation_row(rid, date, attended, **extra))


def supabase_mock(**auth_methods):
    """AsyncClient stand-in whose auth and PostgREST parts can be closed."""
    client = MagicMock(spec=AsyncClient)
    client.auth = MagicMock(name="auth", close=AsyncMock(), **auth_methods)
    client.postgrest = MagicMock(name="postgrest", aclose=AsyncMock())
    return client


@pytest.fixture
def labels():
    return load_dashboard_config().labels


@pytest.fixture
def dashboard_config():
    return load_dashboard_config()


class FakeStore:
    """In-memory DBService with the same query semantics (owner filter, NULLs last on ascending order)."""

    def __init__(self, reservations: Optional[List[Dict]] = None, quotes: Optional[List[Dict]] = None):
        self.owner_id = OWNER_ID
        self.reservations = [parse_reservation(r) for r in reservations or []]
        self.quotes = [parse_quote(q) for q in quotes or []]
        self.profile = UserProfile(id=OWNER_ID, email="owner@example.com", business_name="Clean & Co")
        self._next_id = 100

    def _new_id(self) -> str:
        self._next_id += 1
        return str(self._next_id)

    async def list_reservations(self, resolved=None, ascending=True, before=None):
        items = [r for r in self.reservations if r.owner_id == self.owner_id]
        if before is not None:
            items = [r for r in items if r.scheduled_at and r.scheduled_at < before]
        if resolved is True:
            items = [r for r in items if r.attendance is not Attendance.UNRESOLVED]
        elif resolved is False:
            items = [r for r in items if r.attendance is Attendance.UNRESOLVED]
        scheduled = sorted((r for r in items if r.scheduled_at), key=lambda r: r.scheduled_at, reverse=not ascending)
        unscheduled = [r for r in items if not r.scheduled_at]
        return scheduled + unscheduled if ascending else unscheduled + scheduled

    async def get_reservation(self, reservation_id):
        for r in self.reservations:
            if r.id == reservation_id and r.owner_id == self.owner_id:
                return r
        raise RecordNotFoundError("Reservation not found", back="/reservations")

    async def create_reservation(self, form: ReservationCreate):
        row = form.to_row(self.owner_id)
        row.update(id=self._new_id(), created_at=NOW.isoformat())
        reservation = parse_reservation(row)
        self.reservations.append(reservation)
        return reservation

    async def set_attendance(self, reservation_id, attendance: Attendance):
        reservation = await self.get_reservation(reservation_id)
        reservation.attendance = attendance
        return reservation

    async def delete_reservation(self, reservation_id):
        reservation = await self.get_reservation(reservation_id)
        self.reservations.remove(reservation)

    async def list_quotes(self, limit=None):
        items = [q for q in self.quotes if q.owner_id == self.owner_id]
        items = sorted(items, key=lambda q: q.created_at, reverse=True)
        return items[:limit] if limit else items

    async def get_quote(self, quote_id):
        for q in self.quotes:
            if q.id == quote_id and q.owner_id == self.owner_id:
                return q
        raise RecordNotFoundError("Quote not found", back="/quotes")

    async def create_quote(self, form: QuoteCreate):
        row = form.to_row(self.owner_id)
        row.update(id=self._new_id(), created_at=NOW.isoformat())
        quote = parse_quote(row)
        self.quotes.append(quote)
        return quote

    async def set_quote_status(self, quote_id, status: QuoteStatus):
        quote = await self.get_quote(quote_id)
        quote.status = status
        return quote

    async def delete_quote(self, quote_id):
        quote = await self.get_quote(quote_id)
        self.quotes.remove(quote)

    async def update_profile(self, form: ProfileUpdate):
        self.profile = parse_profile({**self.profile.model_dump(), **form.to_row()})
        return self.profile


@pytest.fixture
def store():
    return FakeStore(
        reservations=[
            reservation_row("r-today", "2024-03-15T10:00:00"),
            reservation_row("r-tomorrow", "2024-03-16T09:30:00", name="Bob"),
            reservation_row("r-unscheduled", None, name="Carol"),
            reservation_row("r-attended", "2024-03-10T14:00:00", attended=True, name="Dan"),
            reservation_row("r-missed", "2024-03-12T11:00:00", attended=False, name="Eve"),
            reservation_row("r-foreign", "2024-03-15T11:00:00", owner="owner-2", name="Mallory"),
        ],
        quotes=[
            quote_row("q-1", "pending", "2024-03-01T08:00:00+00:00"),
            quote_row("q-2", "approved", "2024-03-05T08:00:00+00:00"),
            quote_row("q-3", "pending", "2024-03-07T08:00:00+00:00"),
            quote_row("q-4", "rejected", "2024-03-09T08:00:00+00:00"),
            quote_row("q-foreign", "pending", owner="owner-2"),
        ],
    )


@pytest.fixture
def session_context(store):
    return SessionContext(
        auth_user_id="auth-1",
        email="owner@example.com",
        access_token="test-token",
        profile=store.profile,
        client=supabase_mock(),
        expires_at=NOW.timestamp() + 10 ** 9,
    )


@pytest.fixture
def client(store, session_context):
    """TestClient signed in as OWNER_ID, 'now' frozen at NOW."""
    app.dependency_overrides[get_session_context] = lambda: session_context
    app.dependency_overrides[deps.get_store] = lambda: store
    app.dependency_overrides[deps.get_now] = lambda: NOW
    with TestClient(app, headers={"Authorization": "Bearer test-token"}) as test_client:
        yield test_client
    app.dependency_overrides.clear()
