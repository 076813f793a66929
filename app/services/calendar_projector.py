import logging
from datetime import date, datetime, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Literal, Optional, Sequence, Tuple

from schemas.booking import EnrichedBookingRecord
from schemas.calendar import CalendarDayIndex, CalendarFilters, SortKey, SortOrder

logger = logging.getLogger(__name__)

CalendarEvent = Literal["pickup", "return"]


def day_key(instant: Optional[Any], tz: Optional[tzinfo] = None) -> Optional[str]:
    """
    'YYYY-MM-DD' of an instant in the viewer's calendar.

    Aware datetimes are converted to ``tz`` (the server's local zone when
    None); naive datetimes and plain dates are taken as already local.
    """
    if instant is None:
        return None
    if isinstance(instant, datetime):
        if instant.tzinfo is not None:
            instant = instant.astimezone(tz)
        return instant.date().isoformat()
    if isinstance(instant, date):
        return instant.isoformat()
    return None


def matches_filters(record: EnrichedBookingRecord, filters: CalendarFilters) -> bool:
    if record.is_terminal and not filters.include_terminal:
        return False
    if filters.car_id and record.car_id != filters.car_id:
        return False
    if filters.make:
        vehicle = record.vehicle
        if vehicle is None or vehicle.brand.lower() != filters.make.split("-")[0].strip().lower():
            return False
        # a model without a make is ignored
        if filters.model and (vehicle.model or "").strip().lower() != filters.model.lower():
            return False
    return True


class CalendarProjector:
    """
    Day-indexed view over enriched bookings.

    Stateless: ``project`` builds a fresh index on every call, so the same
    records and filters always produce an equal index.
    """

    def project(
        self,
        records: Iterable[EnrichedBookingRecord],
        filters: Optional[CalendarFilters] = None,
    ) -> CalendarDayIndex:
        filters = filters or CalendarFilters()
        tz = filters.tzinfo
        pickups: Dict[str, List[EnrichedBookingRecord]] = {}
        returns: Dict[str, List[EnrichedBookingRecord]] = {}

        skipped = 0
        for record in records:
            if not matches_filters(record, filters):
                skipped += 1
                continue
            pickup_day = day_key(record.start_date, tz)
            if pickup_day:
                pickups.setdefault(pickup_day, []).append(record)
            return_day = day_key(record.end_date, tz)
            if return_day:
                returns.setdefault(return_day, []).append(record)

        logger.debug(
            "Calendar projected",
            extra={"pickup_days": len(pickups), "return_days": len(returns), "filtered_out": skipped},
        )
        return CalendarDayIndex(pickups=pickups, returns=returns)

    def sort_day(
        self,
        records: Sequence[EnrichedBookingRecord],
        key: SortKey = "time",
        order: SortOrder = "asc",
        event: CalendarEvent = "pickup",
    ) -> List[EnrichedBookingRecord]:
        """
        Sorted copy of one day's list; the input is left untouched.

        Stable in both directions: records with equal keys keep their
        relative order. Records without a value for the key go last.
        """
        extract = _sort_extractors(event)[key]

        present: List[Tuple[Any, EnrichedBookingRecord]] = []
        missing: List[EnrichedBookingRecord] = []
        for record in records:
            value = extract(record)
            if value is None or value == "":
                missing.append(record)
            else:
                present.append((value, record))

        ordered = sorted(present, key=lambda pair: pair[0], reverse=(order == "desc"))
        return [record for _, record in ordered] + missing


def _time_value(raw: Optional[str]) -> Optional[str]:
    # '9:30' -> '09:30' so text order matches clock order
    if not raw:
        return None
    hours, sep, rest = raw.strip().partition(":")
    if sep and hours.isdigit():
        return f"{int(hours):02d}:{rest}"
    return raw.strip()


def _sort_extractors(event: CalendarEvent) -> Dict[str, Callable[[EnrichedBookingRecord], Any]]:
    return {
        "time": lambda r: _time_value(r.start_time if event == "pickup" else r.end_time),
        "counterpart": lambda r: r.customer_name.lower() or None,
        "vehicle": lambda r: r.vehicle_name.lower() or None,
        "status": lambda r: r.status.value if r.status else None,
    }
