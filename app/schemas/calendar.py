from typing import Dict, List, Literal, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.booking import EnrichedBookingRecord

SortKey = Literal["time", "counterpart", "vehicle", "status"]
SortOrder = Literal["asc", "desc"]


class CalendarFilters(BaseModel):
    """Filters applied before day indexing. ``model`` only applies together with ``make``."""
    model_config = ConfigDict(frozen=True)

    make: Optional[str] = None
    model: Optional[str] = None
    car_id: Optional[str] = None
    include_terminal: bool = False
    # viewer's IANA timezone; None means the server's local zone
    timezone: Optional[str] = None

    @field_validator("make", "model", "car_id", mode="before")
    def blank_to_none(cls, v):
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("timezone")
    def known_timezone(cls, v):
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    @property
    def tzinfo(self) -> Optional[ZoneInfo]:
        return ZoneInfo(self.timezone) if self.timezone else None


class CalendarDayIndex(BaseModel):
    """Records keyed by 'YYYY-MM-DD' pickup day and return day."""
    pickups: Dict[str, List[EnrichedBookingRecord]] = Field(default_factory=dict)
    returns: Dict[str, List[EnrichedBookingRecord]] = Field(default_factory=dict)

    def days(self) -> List[str]:
        return sorted(set(self.pickups) | set(self.returns))
