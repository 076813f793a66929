from datetime import date, datetime
from enum import Enum
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.coercion import coerce_identifier, coerce_number, parse_instant
from schemas.options import RentalOptions, parse_options
from schemas.vehicle import VehicleOut

BookingKind = Literal["rental", "request"]


class BookingStatus(str, Enum):
    # rental lifecycle
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    # request lifecycle
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    EXECUTED = "EXECUTED"

    @classmethod
    def resolve(cls, value: Any) -> Optional["BookingStatus"]:
        """Case-insensitive lookup; unknown or empty values resolve to None."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        key = value.strip().upper()
        if key == "CANCELED":
            key = "CANCELLED"
        try:
            return cls(key)
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.REJECTED})


class BookingRecord(BaseModel):
    """A rental or a request row, normalized once at the store boundary."""

    kind: BookingKind
    id: str
    user_id: Optional[str] = None
    car_id: Optional[str] = None
    # rentals: the request this rental was converted from
    request_id: Optional[str] = None
    start_date: Optional[Union[datetime, date]] = None
    start_time: Optional[str] = None
    end_date: Optional[Union[datetime, date]] = None
    end_time: Optional[str] = None
    total_amount: Optional[float] = None
    price_per_day: Optional[float] = None
    status: Optional[BookingStatus] = None
    contract_url: Optional[str] = None
    options: RentalOptions = Field(default_factory=RentalOptions)
    customer_first_name: Optional[str] = None
    customer_last_name: Optional[str] = None
    customer_email: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", "user_id", "car_id", "request_id", mode="before")
    def coerce_ids(cls, v):
        return coerce_identifier(v)

    @field_validator("total_amount", "price_per_day", mode="before")
    def coerce_amounts(cls, v):
        return coerce_number(v)

    @field_validator("start_date", "end_date", mode="before")
    def coerce_dates(cls, v):
        return parse_instant(v)

    @field_validator("created_at", mode="before")
    def coerce_created_at(cls, v):
        instant = parse_instant(v)
        if isinstance(instant, datetime):
            return instant
        if isinstance(instant, date):
            return datetime(instant.year, instant.month, instant.day)
        return None

    @field_validator("status", mode="before")
    def resolve_status(cls, v):
        return BookingStatus.resolve(v)

    @field_validator("options", mode="before")
    def normalize_options(cls, v):
        return parse_options(v)

    @field_validator("start_time", "end_time", "contract_url", mode="before")
    def blank_to_none(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.is_terminal

    @property
    def customer_name(self) -> str:
        first = (self.customer_first_name or "").strip()
        last = (self.customer_last_name or "").strip()
        if first and last:
            return f"{first} {last}"
        if first or last:
            return first or last
        if self.customer_email:
            return self.customer_email.split("@")[0]
        if self.user_id:
            return f"User {self.user_id[:8]}"
        return ""

    @classmethod
    def from_rental_row(cls, row: Any) -> "BookingRecord":
        return cls(
            kind="rental",
            id=row.id,
            user_id=getattr(row, "user_id", None),
            car_id=getattr(row, "car_id", None),
            request_id=getattr(row, "request_id", None),
            start_date=getattr(row, "start_date", None),
            start_time=getattr(row, "start_time", None),
            end_date=getattr(row, "end_date", None),
            end_time=getattr(row, "end_time", None),
            total_amount=getattr(row, "total_amount", None),
            price_per_day=getattr(row, "price_per_day", None),
            status=getattr(row, "rental_status", None) or getattr(row, "status", None),
            contract_url=getattr(row, "contract_url", None),
            options=getattr(row, "options", None),
            created_at=getattr(row, "created_at", None),
        )

    @classmethod
    def from_request_row(cls, row: Any) -> "BookingRecord":
        return cls(
            kind="request",
            id=row.id,
            user_id=getattr(row, "user_id", None),
            car_id=getattr(row, "car_id", None),
            start_date=getattr(row, "start_date", None),
            start_time=getattr(row, "start_time", None),
            end_date=getattr(row, "end_date", None),
            end_time=getattr(row, "end_time", None),
            total_amount=getattr(row, "total_amount", None),
            price_per_day=getattr(row, "price_per_day", None),
            status=getattr(row, "status", None),
            contract_url=getattr(row, "contract_url", None),
            options=getattr(row, "options", None),
            customer_first_name=getattr(row, "customer_first_name", None),
            customer_last_name=getattr(row, "customer_last_name", None),
            customer_email=getattr(row, "customer_email", None),
            created_at=getattr(row, "created_at", None),
        )


class EnrichedBookingRecord(BookingRecord):
    vehicle: Optional[VehicleOut] = None
    # requests: the rental created from this request, when converted
    linked_rental_id: Optional[str] = None
    # keys of enabled options, for display
    selected_options: List[str] = Field(default_factory=list)

    @property
    def vehicle_name(self) -> str:
        return self.vehicle.display_name if self.vehicle else ""


class BookingQuery(BaseModel):
    """Immutable list/search parameters owned by the caller."""
    model_config = ConfigDict(frozen=True)

    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)
    sort_by: Optional[Literal["start_date", "total_amount"]] = "start_date"
    sort_order: Literal["asc", "desc"] = "desc"
    search: str = ""
    status: Optional[str] = None

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class BookingPage(BaseModel):
    items: List[EnrichedBookingRecord] = Field(default_factory=list)
    total: int = 0
