from datetime import datetime
from typing import List, Optional

from supabase import AsyncClient

from dashboard.core.exceptions import RecordNotFoundError, StorageError
from dashboard.core.logger import logger
from dashboard.models.records import (
    Attendance,
    ProfileUpdate,
    Quote,
    QuoteCreate,
    QuoteStatus,
    Reservation,
    ReservationCreate,
    UserProfile,
    parse_many,
    parse_profile,
    parse_quote,
    parse_reservation,
)

RESERVATIONS = "reservations"
QUOTES = "quotes"
USERS = "users"


async def run_query(query, action: str):
    try:
        return await query.execute()
    except Exception as e:
        logger.error(f"❌ DB Error ({action}): {e}")
        raise StorageError(getattr(e, "message", None) or str(e))


async def fetch_profile(client: AsyncClient, auth_user_id: str) -> Optional[UserProfile]:
    """Business profile linked to a Supabase auth user, or None."""
    response = await run_query(
        client.table(USERS).select("*").eq("dashboard_user_id", auth_user_id).limit(1),
        "fetch_profile",
    )
    if not response.data:
        return None
    return parse_profile(response.data[0])


class DBService:
    """
    Reservation/quote/profile access for one business account.
    Every query is filtered by the owner, whatever the row-level security says.
    """

    def __init__(self, client: AsyncClient, owner_id: str):
        self.client = client
        self.owner_id = owner_id

    # --- Reservations ---

    async def list_reservations(
        self,
        resolved: Optional[bool] = None,
        ascending: bool = True,
        before: Optional[datetime] = None,
    ) -> List[Reservation]:
        """
        resolved=None: every reservation, False: outcome not recorded yet,
        True: attended or missed. `before` keeps reservations scheduled
        strictly earlier than the cutoff.
        """
        query = self.client.table(RESERVATIONS).select("*").eq("user_id", self.owner_id)
        if resolved is True:
            query = query.not_.is_("attended", "null")
        elif resolved is False:
            query = query.is_("attended", "null")
        if before is not None:
            query = query.lt("date", before.isoformat())
        query = query.order("date", desc=not ascending)

        response = await run_query(query, "list_reservations")
        return parse_many(response.data, parse_reservation)

    async def get_reservation(self, reservation_id: str) -> Reservation:
        response = await run_query(
            self.client.table(RESERVATIONS).select("*")
            .eq("id", reservation_id)
            .eq("user_id", self.owner_id)
            .limit(1),
            "get_reservation",
        )
        if not response.data:
            raise RecordNotFoundError("Reservation not found", back="/reservations")
        return parse_reservation(response.data[0])

    async def create_reservation(self, form: ReservationCreate) -> Reservation:
        response = await run_query(
            self.client.table(RESERVATIONS).insert(form.to_row(self.owner_id)),
            "create_reservation",
        )
        if not response.data:
            raise StorageError("Reservation was not saved")
        reservation = parse_reservation(response.data[0])
        logger.info(f"🆕 Reservation {reservation.id} created for {reservation.customer_name}")
        return reservation

    async def set_attendance(self, reservation_id: str, attendance: Attendance) -> Reservation:
        response = await run_query(
            self.client.table(RESERVATIONS).update({"attended": attendance.to_flag()})
            .eq("id", reservation_id)
            .eq("user_id", self.owner_id),
            "set_attendance",
        )
        if not response.data:
            raise RecordNotFoundError("Reservation not found", back="/reservations")
        logger.info(f"✅ Reservation {reservation_id} marked {attendance.value}")
        return parse_reservation(response.data[0])

    async def delete_reservation(self, reservation_id: str) -> None:
        response = await run_query(
            self.client.table(RESERVATIONS).delete()
            .eq("id", reservation_id)
            .eq("user_id", self.owner_id),
            "delete_reservation",
        )
        if not response.data:
            raise RecordNotFoundError("Reservation not found", back="/reservations")
        logger.info(f"🗑️ Reservation {reservation_id} deleted.")

    # --- Quotes ---

    async def list_quotes(self, limit: Optional[int] = None) -> List[Quote]:
        """Newest first."""
        query = self.client.table(QUOTES).select("*").eq("user_id", self.owner_id).order("created_at", desc=True)
        if limit:
            query = query.limit(limit)
        response = await run_query(query, "list_quotes")
        return parse_many(response.data, parse_quote)

    async def get_quote(self, quote_id: str) -> Quote:
        response = await run_query(
            self.client.table(QUOTES).select("*")
            .eq("id", quote_id)
            .eq("user_id", self.owner_id)
            .limit(1),
            "get_quote",
        )
        if not response.data:
            raise RecordNotFoundError("Quote not found", back="/quotes")
        return parse_quote(response.data[0])

    async def create_quote(self, form: QuoteCreate) -> Quote:
        response = await run_query(self.client.table(QUOTES).insert(form.to_row(self.owner_id)), "create_quote")
        if not response.data:
            raise StorageError("Quote was not saved")
        quote = parse_quote(response.data[0])
        logger.info(f"🆕 Quote {quote.id} created for {quote.customer_name}")
        return quote

    async def set_quote_status(self, quote_id: str, status: QuoteStatus) -> Quote:
        response = await run_query(
            self.client.table(QUOTES).update({"status": status.value})
            .eq("id", quote_id)
            .eq("user_id", self.owner_id),
            "set_quote_status",
        )
        if not response.data:
            raise RecordNotFoundError("Quote not found", back="/quotes")
        logger.info(f"✅ Quote {quote_id} set to {status.value}")
        return parse_quote(response.data[0])

    async def delete_quote(self, quote_id: str) -> None:
        response = await run_query(
            self.client.table(QUOTES).delete()
            .eq("id", quote_id)
            .eq("user_id", self.owner_id),
            "delete_quote",
        )
        if not response.data:
            raise RecordNotFoundError("Quote not found", back="/quotes")
        logger.info(f"🗑️ Quote {quote_id} deleted.")

    # --- Profile ---

    async def update_profile(self, form: ProfileUpdate) -> UserProfile:
        response = await run_query(
            self.client.table(USERS).update(form.to_row()).eq("id", self.owner_id),
            "update_profile",
        )
        if not response.data:
            raise RecordNotFoundError("Profile not found", back="/settings")
        logger.info(f"✨ Profile {self.owner_id} updated")
        return parse_profile(response.data[0])
