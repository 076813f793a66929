import logging
import re
from typing import List, Optional, Tuple

from sqlalchemy import Float, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Select

from core.metrics import track_performance
from models.borrow_request import BorrowRequest
from models.rental import Rental
from schemas.booking import BookingPage, BookingQuery, BookingRecord, BookingStatus, EnrichedBookingRecord
from services.asset_resolver import AssetResolver
from services.exceptions import DatabaseQueryError, InvalidQueryParametersError
from services.record_enricher import RecordEnricher
from services.vehicle_service import VehicleService, numeric_ids

logger = logging.getLogger(__name__)

_MONTH = re.compile(r"^(\d{4})-(\d{2})$")


def month_bounds(month: str) -> Tuple[str, str]:
    """
    'YYYY-MM' -> ('YYYY-MM-01', first day of the next month).

    Start dates are stored as ISO text, so plain string comparison against
    these bounds selects the month.

    Raises:
        InvalidQueryParametersError: month is not 'YYYY-MM' or out of range
    """
    match = _MONTH.match((month or "").strip())
    if not match:
        raise InvalidQueryParametersError(f"Invalid month '{month}', expected YYYY-MM.")
    year, mon = int(match.group(1)), int(match.group(2))
    if not 1 <= mon <= 12:
        raise InvalidQueryParametersError(f"Invalid month '{month}', expected YYYY-MM.")
    next_year, next_mon = (year + 1, 1) if mon == 12 else (year, mon + 1)
    return f"{year:04d}-{mon:02d}-01", f"{next_year:04d}-{next_mon:02d}-01"


def resolve_status_filter(status: Optional[str]) -> Optional[BookingStatus]:
    if status is None or not str(status).strip():
        return None
    resolved = BookingStatus.resolve(status)
    if resolved is None:
        raise InvalidQueryParametersError(f"Unknown status '{status}'.")
    return resolved


class BookingService:
    """
    Read side of rentals and booking requests.

    Every public query returns enriched records: rows are normalized into
    ``BookingRecord`` at this boundary and handed to ``RecordEnricher`` as one
    batch. Store failures surface as ``DatabaseQueryError``; enrichment
    failures never do.
    """

    def __init__(self, db: AsyncSession, resolver: AssetResolver):
        self.db = db
        self.vehicle_service = VehicleService(db, resolver)
        self.enricher = RecordEnricher(db, resolver, vehicle_service=self.vehicle_service)

    @track_performance(service_name="BookingService")
    async def fetch_rentals_history(self, actor_id: str, query: Optional[BookingQuery] = None) -> BookingPage:
        """
        One page of the actor's rentals plus the exact number of matches.

        A search text is resolved to vehicle ids first; when no vehicle
        matches, the page is empty and the rentals table is not queried.
        """
        query = query or BookingQuery()
        stmt = select(Rental).where(Rental.user_id == str(actor_id))

        if query.search.strip():
            car_ids = await self.vehicle_service.fetch_vehicle_ids_by_query(query.search)
            if not car_ids:
                return BookingPage()
            stmt = stmt.where(Rental.car_id.in_(car_ids))

        status = resolve_status_filter(query.status)
        if status is not None:
            stmt = stmt.where(func.upper(Rental.rental_status) == status.value)

        total = await self._count(stmt)

        sort_column = cast(Rental.total_amount, Float) if query.sort_by == "total_amount" else Rental.start_date
        if query.sort_order == "asc":
            stmt = stmt.order_by(sort_column.asc(), Rental.id.asc())
        else:
            stmt = stmt.order_by(sort_column.desc(), Rental.id.desc())
        stmt = stmt.offset(query.offset).limit(query.page_size)

        rows = await self._rentals(stmt)
        return BookingPage(items=await self.enricher.enrich(rows), total=total)

    @track_performance(service_name="BookingService")
    async def fetch_rentals_calendar_page(
        self,
        actor_id: str,
        month: str,
        car_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> List[EnrichedBookingRecord]:
        """The actor's rentals starting within ``month`` ('YYYY-MM'), earliest first."""
        month_start, next_month = month_bounds(month)
        stmt = select(Rental).where(
            Rental.user_id == str(actor_id),
            Rental.start_date >= month_start,
            Rental.start_date < next_month,
        )
        if car_id is not None and str(car_id).strip():
            wanted = numeric_ids([car_id])
            if not wanted:
                return []
            stmt = stmt.where(Rental.car_id == wanted[0])

        resolved = resolve_status_filter(status)
        if resolved is not None:
            stmt = stmt.where(func.upper(Rental.rental_status) == resolved.value)

        stmt = stmt.order_by(Rental.start_date.asc(), Rental.id.asc())
        return await self.enricher.enrich(await self._rentals(stmt))

    async def fetch_active_rentals(self, actor_id: str) -> List[EnrichedBookingRecord]:
        stmt = (
            select(Rental)
            .where(Rental.user_id == str(actor_id), func.upper(Rental.rental_status) == BookingStatus.ACTIVE.value)
            .order_by(Rental.start_date.asc(), Rental.id.asc())
        )
        return await self.enricher.enrich(await self._rentals(stmt))

    async def fetch_recent_rentals(self, actor_id: str, limit: int = 5) -> List[EnrichedBookingRecord]:
        if limit < 1:
            raise InvalidQueryParametersError("limit must be at least 1.")
        stmt = (
            select(Rental)
            .where(Rental.user_id == str(actor_id))
            .order_by(Rental.created_at.desc(), Rental.id.desc())
            .limit(limit)
        )
        return await self.enricher.enrich(await self._rentals(stmt))

    @track_performance(service_name="BookingService")
    async def fetch_requests(self, query: Optional[BookingQuery] = None) -> BookingPage:
        """All booking requests, newest first, optionally narrowed to one status."""
        query = query or BookingQuery()
        stmt = select(BorrowRequest)
        status = resolve_status_filter(query.status)
        if status is not None:
            stmt = stmt.where(func.upper(BorrowRequest.status) == status.value)

        total = await self._count(stmt)
        stmt = (
            stmt.order_by(BorrowRequest.created_at.desc(), BorrowRequest.id.desc())
            .offset(query.offset)
            .limit(query.page_size)
        )
        try:
            result = await self.db.execute(stmt)
            rows = [BookingRecord.from_request_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))
        return BookingPage(items=await self.enricher.enrich(rows), total=total)

    @track_performance(service_name="BookingService")
    async def fetch_rentals(self, query: Optional[BookingQuery] = None) -> BookingPage:
        """All rentals except those still pending, newest first."""
        query = query or BookingQuery()
        stmt = select(Rental).where(
            (Rental.rental_status.is_(None)) | (func.upper(Rental.rental_status) != BookingStatus.PENDING.value)
        )
        status = resolve_status_filter(query.status)
        if status is not None:
            stmt = stmt.where(func.upper(Rental.rental_status) == status.value)

        total = await self._count(stmt)
        stmt = (
            stmt.order_by(Rental.created_at.desc(), Rental.id.desc())
            .offset(query.offset)
            .limit(query.page_size)
        )
        return BookingPage(items=await self.enricher.enrich(await self._rentals(stmt)), total=total)

    async def _rentals(self, stmt: Select) -> List[BookingRecord]:
        try:
            result = await self.db.execute(stmt)
            return [BookingRecord.from_rental_row(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

    async def _count(self, stmt: Select) -> int:
        try:
            result = await self.db.execute(select(func.count()).select_from(stmt.subquery()))
            return int(result.scalar_one())
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))
