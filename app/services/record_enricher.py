import asyncio
import logging
from typing import Dict, List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from core.environment import get_placeholder_image_url
from core.metrics import track_performance
from core.prometheus_metrics import prometheus_collector
from models.borrow_request import BorrowRequest
from models.rental import Rental
from schemas.booking import BookingRecord, EnrichedBookingRecord
from schemas.options import RentalOptions, parse_options
from schemas.vehicle import VehicleOut
from services.asset_resolver import AssetResolver
from services.exceptions import RentalDomainError
from services.vehicle_images import resolve_vehicle_images
from services.vehicle_service import VehicleService, numeric_ids

logger = logging.getLogger(__name__)


class RecordEnricher:
    """
    Turns rental and request rows into display-ready records.

    For a batch of rows this service:
    - fetches every referenced vehicle in one bulk query
    - resolves bucket photos once per distinct vehicle
    - pulls options from the originating request when a rental has none
    - copies price, total and contract down from the rental a request was
      converted into

    Every lookup beyond the bulk vehicle query is best-effort: a missing
    vehicle, linked row or photo folder leaves the corresponding field at its
    default, and one row failing never affects the others.
    """

    def __init__(
        self,
        db: AsyncSession,
        resolver: AssetResolver,
        vehicle_service: Optional[VehicleService] = None,
        placeholder_url: Optional[str] = None,
    ):
        self.db = db
        self.resolver = resolver
        self.vehicle_service = vehicle_service or VehicleService(db)
        self.placeholder_url = placeholder_url if placeholder_url is not None else get_placeholder_image_url()

    @track_performance(service_name="RecordEnricher")
    async def enrich(self, rows: Sequence[BookingRecord]) -> List[EnrichedBookingRecord]:
        if not rows:
            return []

        # Bulk vehicle fetch completes before any photo lookup starts
        vehicles = await self._fetch_vehicles(rows)
        linked_options = await self._fetch_linked_request_options(rows)
        linked_rentals = await self._fetch_linked_rentals(rows)

        image_tasks: Dict[str, asyncio.Future] = {}
        enriched = await asyncio.gather(*(
            self._enrich_row(row, vehicles, linked_options, linked_rentals, image_tasks)
            for row in rows
        ))
        return list(enriched)

    async def _enrich_row(
        self,
        row: BookingRecord,
        vehicles: Dict[str, VehicleOut],
        linked_options: Dict[str, RentalOptions],
        linked_rentals: Dict[str, BookingRecord],
        image_tasks: Dict[str, asyncio.Future],
    ) -> EnrichedBookingRecord:
        vehicle = vehicles.get(row.car_id) if row.car_id else None
        try:
            if vehicle is not None:
                vehicle = await self._vehicle_with_images(vehicle, image_tasks)

            updates = {"vehicle": vehicle}

            if row.options.is_empty() and row.request_id:
                updates["options"] = linked_options.get(row.request_id, RentalOptions())

            if row.kind == "request":
                updates.update(self._inherit_from_rental(row, linked_rentals.get(row.id)))

            updates["selected_options"] = updates.get("options", row.options).selected()

            enriched = EnrichedBookingRecord(**{**dict(row), **updates})
        except Exception as e:
            logger.warning(
                f"Enrichment degraded for {row.kind} {row.id}: {e}",
                extra={"booking_id": row.id, "kind": row.kind},
            )
            fallback_vehicle = None
            if vehicle is not None:
                fallback_vehicle = vehicle.model_copy(update={
                    "primary_image": vehicle.primary_image or vehicle.image_url or self.placeholder_url,
                })
            enriched = EnrichedBookingRecord(**{
                **dict(row),
                "vehicle": fallback_vehicle,
                "selected_options": row.options.selected(),
            })

        prometheus_collector.record_enriched_record(row.kind, enriched.vehicle is not None)
        return enriched

    @staticmethod
    def _inherit_from_rental(request: BookingRecord, rental: Optional[BookingRecord]) -> dict:
        """Values of the converted rental win; the request's own values fill the gaps."""
        if rental is None:
            return {}
        return {
            "linked_rental_id": rental.id,
            "price_per_day": rental.price_per_day if rental.price_per_day is not None else request.price_per_day,
            "total_amount": rental.total_amount if rental.total_amount is not None else request.total_amount,
            "contract_url": rental.contract_url or request.contract_url,
        }

    async def _vehicle_with_images(self, vehicle: VehicleOut, image_tasks: Dict[str, asyncio.Future]) -> VehicleOut:
        # rows sharing a vehicle share one resolution
        key = str(vehicle.id)
        task = image_tasks.get(key)
        if task is None:
            task = asyncio.ensure_future(resolve_vehicle_images(self.resolver, vehicle, self.placeholder_url))
            image_tasks[key] = task
        return await task

    async def _fetch_vehicles(self, rows: Sequence[BookingRecord]) -> Dict[str, VehicleOut]:
        car_ids = {row.car_id for row in rows if row.car_id}
        if not car_ids:
            return {}
        try:
            return await self.vehicle_service.fetch_vehicles_by_ids(car_ids)
        except RentalDomainError as e:
            logger.warning(f"Bulk vehicle fetch failed, continuing without vehicles: {e}")
            return {}

    async def _fetch_linked_request_options(self, rows: Sequence[BookingRecord]) -> Dict[str, RentalOptions]:
        """Options of originating requests, for rentals stored without any."""
        request_ids = numeric_ids(
            row.request_id for row in rows
            if row.kind == "rental" and row.request_id and row.options.is_empty()
        )
        if not request_ids:
            return {}
        try:
            result = await self.db.execute(
                select(BorrowRequest.id, BorrowRequest.options).where(BorrowRequest.id.in_(request_ids))
            )
            return {str(request_id): parse_options(options) for request_id, options in result.all()}
        except SQLAlchemyError as e:
            logger.warning(f"Linked request lookup failed: {e}")
            return {}

    async def _fetch_linked_rentals(self, rows: Sequence[BookingRecord]) -> Dict[str, BookingRecord]:
        """Rentals created from the given requests, keyed by request id (lowest rental id wins)."""
        request_ids = numeric_ids(row.id for row in rows if row.kind == "request")
        if not request_ids:
            return {}
        try:
            result = await self.db.execute(
                select(Rental).where(Rental.request_id.in_(request_ids)).order_by(Rental.id)
            )
            linked: Dict[str, BookingRecord] = {}
            for rental in result.scalars().all():
                linked.setdefault(str(rental.request_id), BookingRecord.from_rental_row(rental))
            return linked
        except SQLAlchemyError as e:
            logger.warning(f"Linked rental lookup failed: {e}")
            return {}
