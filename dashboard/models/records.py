from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from dashboard.core.exceptions import RecordFormatError
from dashboard.core.logger import logger

# --- Enums ---

class Attendance(str, Enum):
    """Outcome of a reservation. Stored as a nullable boolean `attended` column."""
    UNRESOLVED = "unresolved"
    ATTENDED = "attended"
    MISSED = "missed"

    @classmethod
    def from_flag(cls, flag: Optional[bool]) -> "Attendance":
        if flag is None:
            return cls.UNRESOLVED
        return cls.ATTENDED if flag else cls.MISSED

    def to_flag(self) -> Optional[bool]:
        if self is Attendance.UNRESOLVED:
            return None
        return self is Attendance.ATTENDED


class QuoteStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# --- Stored records ---

class Reservation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(validation_alias=AliasChoices("owner_id", "user_id"))
    customer_name: str = Field(min_length=1)
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customer_email", "customer_mail")
    )
    scheduled_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("scheduled_at", "date")
    )
    message: Optional[str] = None
    attendance: Attendance = Field(
        default=Attendance.UNRESOLVED, validation_alias=AliasChoices("attendance", "attended")
    )
    created_at: datetime

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value) if value is not None else value

    @field_validator("customer_phone", "customer_email", "message", mode="before")
    @classmethod
    def _optional_text(cls, value):
        return _blank_to_none(value)

    @field_validator("attendance", mode="before")
    @classmethod
    def _attendance_from_flag(cls, value):
        if value is None or isinstance(value, bool):
            return Attendance.from_flag(value)
        return value


class Quote(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(validation_alias=AliasChoices("owner_id", "user_id"))
    customer_name: str = Field(min_length=1)
    customer_email: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("customer_email", "customer_mail")
    )
    customer_phone: Optional[str] = None
    message: Optional[str] = None
    # Statuses written by other tools are kept as plain strings
    status: Union[QuoteStatus, str] = Field(default=QuoteStatus.PENDING, union_mode="left_to_right")
    created_at: datetime

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value) if value is not None else value

    @field_validator("customer_phone", "customer_email", "message", mode="before")
    @classmethod
    def _optional_text(cls, value):
        return _blank_to_none(value)

    @field_validator("status", mode="before")
    @classmethod
    def _status_or_pending(cls, value):
        if value is None or (isinstance(value, str) and not value.strip()):
            return QuoteStatus.PENDING
        return value

    @property
    def status_value(self) -> str:
        return self.status.value if isinstance(self.status, QuoteStatus) else self.status


class UserProfile(BaseModel):
    """Business account row (`users` table) linked to a Supabase auth user."""
    id: str
    email: str
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    dashboard_user_id: Optional[str] = None

    @field_validator("id", "dashboard_user_id", mode="before")
    @classmethod
    def _stringify_ids(cls, value):
        return str(value) if value is not None else value


# --- Storage boundary ---

def parse_reservation(row: Dict[str, Any]) -> Reservation:
    try:
        return Reservation.model_validate(row)
    except ValidationError as e:
        raise RecordFormatError(f"Malformed reservation row {row.get('id')}: {e.error_count()} invalid field(s)")


def parse_quote(row: Dict[str, Any]) -> Quote:
    try:
        return Quote.model_validate(row)
    except ValidationError as e:
        raise RecordFormatError(f"Malformed quote row {row.get('id')}: {e.error_count()} invalid field(s)")


def parse_profile(row: Dict[str, Any]) -> UserProfile:
    try:
        return UserProfile.model_validate(row)
    except ValidationError as e:
        raise RecordFormatError(f"Malformed profile row {row.get('id')}: {e.error_count()} invalid field(s)")


def parse_many(rows: Iterable[Dict[str, Any]], parser) -> List:
    """Parses a listing; rows that fail validation are logged and left out."""
    records = []
    for row in rows or []:
        try:
            records.append(parser(row))
        except RecordFormatError as e:
            logger.error(f"❌ Skipping row: {e.message}")
    return records


# --- Operator input ---

class ContactForm(BaseModel):
    customer_name: str
    customer_phone: Optional[str] = None
    customer_email: Optional[str] = None
    message: Optional[str] = None

    @field_validator("customer_name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Customer name is required")
        return value

    @field_validator("customer_phone", "customer_email", "message", mode="before")
    @classmethod
    def _optional_text(cls, value):
        value = _blank_to_none(value)
        return value.strip() if isinstance(value, str) else value


class ReservationCreate(ContactForm):
    scheduled_at: Optional[datetime] = None

    def to_row(self, owner_id: str) -> Dict[str, Any]:
        return {
            "user_id": owner_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_mail": self.customer_email,
            "date": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "message": self.message,
            "attended": None,
        }


class QuoteCreate(ContactForm):

    def to_row(self, owner_id: str) -> Dict[str, Any]:
        # New quotes always start pending
        return {
            "user_id": owner_id,
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "customer_email": self.customer_email,
            "message": self.message,
            "status": QuoteStatus.PENDING.value,
        }


class AttendanceUpdate(BaseModel):
    attendance: Attendance


class QuoteStatusUpdate(BaseModel):
    status: QuoteStatus


class ProfileUpdate(BaseModel):
    business_name: Optional[str] = None
    business_type: Optional[str] = None
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("business_name", "business_type", "phone", "address", mode="before")
    @classmethod
    def _optional_text(cls, value):
        return _blank_to_none(value)

    @field_validator("email")
    @classmethod
    def _email_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Email is required")
        return value

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump()
