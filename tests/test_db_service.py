from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import OWNER_ID, quote_row, reservation_row

from dashboard.core.exceptions import RecordNotFoundError, StorageError
from dashboard.models.records import Attendance, QuoteStatus, ReservationCreate
from dashboard.services.db_service import DBService, fetch_profile


class APIError(Exception):
    """Shaped like postgrest's APIError: carries a `message`."""

    def __init__(self, message):
        super().__init__(message)
        self.message = message


def mock_client(data=None, error=None):
    """Supabase client whose query builder records every call and returns `data`."""
    query = MagicMock(name="query")
    for method in ("select", "eq", "is_", "lt", "order", "limit", "insert", "update", "delete"):
        getattr(query, method).return_value = query
    negated = MagicMock(name="not_")
    negated.is_.return_value = query
    query.not_ = negated
    query.execute = AsyncMock(return_value=MagicMock(data=data), side_effect=error)

    client = MagicMock(name="client")
    client.table.return_value = query
    return client, query


@pytest.mark.asyncio
async def test_unresolved_reservations_query():
    client, query = mock_client(data=[
        reservation_row("r-1", "2024-03-15T10:00:00"),
        reservation_row("broken", "tomorrow-ish"),
        reservation_row("r-2", None),
    ])
    reservations = await DBService(client, OWNER_ID).list_reservations(resolved=False)

    client.table.assert_called_with("reservations")
    query.eq.assert_any_call("user_id", OWNER_ID)
    query.is_.assert_called_once_with("attended", "null")
    query.not_.is_.assert_not_called()
    query.order.assert_called_once_with("date", desc=False)
    # Malformed rows are skipped, not fatal
    assert [r.id for r in reservations] == ["r-1", "r-2"]


@pytest.mark.asyncio
async def test_resolved_reservations_newest_first():
    client, query = mock_client(data=[reservation_row("r-1", "2024-03-10T10:00:00", attended=True)])
    reservations = await DBService(client, OWNER_ID).list_reservations(resolved=True, ascending=False)

    query.not_.is_.assert_called_once_with("attended", "null")
    query.is_.assert_not_called()
    query.order.assert_called_once_with("date", desc=True)
    assert reservations[0].attendance is Attendance.ATTENDED


@pytest.mark.asyncio
async def test_storage_failure_becomes_storage_error():
    client, _ = mock_client(error=APIError("permission denied for table reservations"))

    with pytest.raises(StorageError) as exc_info:
        await DBService(client, OWNER_ID).list_reservations()

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "permission denied for table reservations"


@pytest.mark.asyncio
async def test_missing_reservation_is_not_found():
    client, query = mock_client(data=[])

    with pytest.raises(RecordNotFoundError) as exc_info:
        await DBService(client, OWNER_ID).get_reservation("r-404")

    assert exc_info.value.status_code == 404
    assert exc_info.value.back == "/reservations"
    query.eq.assert_any_call("id", "r-404")
    query.eq.assert_any_call("user_id", OWNER_ID)


@pytest.mark.asyncio
async def test_create_reservation_inserts_storage_row():
    client, query = mock_client(data=[reservation_row("r-new", "2024-03-20T14:00:00", name="Zoe")])
    form = ReservationCreate(customer_name="Zoe", scheduled_at="2024-03-20T14:00:00")

    reservation = await DBService(client, OWNER_ID).create_reservation(form)

    inserted = query.insert.call_args.args[0]
    assert inserted["user_id"] == OWNER_ID
    assert inserted["date"] == "2024-03-20T14:00:00"
    assert inserted["attended"] is None
    assert reservation.id == "r-new"


@pytest.mark.asyncio
async def test_mark_missed_writes_false_flag():
    client, query = mock_client(data=[reservation_row("r-1", "2024-03-15T10:00:00", attended=False)])

    reservation = await DBService(client, OWNER_ID).set_attendance("r-1", Attendance.MISSED)

    query.update.assert_called_once_with({"attended": False})
    assert reservation.attendance is Attendance.MISSED


@pytest.mark.asyncio
async def test_undo_attendance_writes_null():
    client, query = mock_client(data=[reservation_row("r-1", "2024-03-15T10:00:00")])
    await DBService(client, OWNER_ID).set_attendance("r-1", Attendance.UNRESOLVED)
    query.update.assert_called_once_with({"attended": None})


@pytest.mark.asyncio
async def test_deleting_foreign_reservation_is_not_found():
    # RLS and the owner filter leave nothing to delete
    client, query = mock_client(data=[])

    with pytest.raises(RecordNotFoundError):
        await DBService(client, OWNER_ID).delete_reservation("r-foreign")
    query.delete.assert_called_once()


@pytest.mark.asyncio
async def test_quote_status_update_is_idempotent():
    client, query = mock_client(data=[quote_row("q-1", "approved")])
    store = DBService(client, OWNER_ID)

    first = await store.set_quote_status("q-1", QuoteStatus.APPROVED)
    second = await store.set_quote_status("q-1", QuoteStatus.APPROVED)

    assert first == second
    assert first.status is QuoteStatus.APPROVED
    assert query.update.call_args_list[0].args[0] == {"status": "approved"}


@pytest.mark.asyncio
async def test_quotes_listed_newest_first():
    client, query = mock_client(data=[quote_row("q-2", created_at="2024-03-05T08:00:00+00:00"), quote_row("q-1")])
    quotes = await DBService(client, OWNER_ID).list_quotes()

    client.table.assert_called_with("quotes")
    query.order.assert_called_once_with("created_at", desc=True)
    assert [q.id for q in quotes] == ["q-2", "q-1"]


@pytest.mark.asyncio
async def test_missing_quote_points_back_to_list():
    client, _ = mock_client(data=[])
    with pytest.raises(RecordNotFoundError) as exc_info:
        await DBService(client, OWNER_ID).get_quote("q-404")
    assert exc_info.value.back == "/quotes"


@pytest.mark.asyncio
async def test_fetch_profile():
    client, query = mock_client(data=[{"id": 7, "email": "owner@example.com", "dashboard_user_id": "auth-1"}])
    profile = await fetch_profile(client, "auth-1")

    query.eq.assert_called_once_with("dashboard_user_id", "auth-1")
    assert profile.id == "7"

    client, _ = mock_client(data=[])
    assert await fetch_profile(client, "auth-unknown") is None


@pytest.mark.asyncio
async def test_reservations_before_cutoff():
    client, query = mock_client(data=[])
    await DBService(client, OWNER_ID).list_reservations(before=datetime(2024, 3, 15))
    query.lt.assert_called_once_with("date", "2024-03-15T00:00:00")


@pytest.mark.asyncio
async def test_recent_quotes_limit():
    client, query = mock_client(data=[])
    await DBService(client, OWNER_ID).list_quotes(limit=3)
    query.limit.assert_called_once_with(3)
