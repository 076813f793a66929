import asyncio
import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from core.environment import get_placeholder_image_url
from core.metrics import track_performance
from models.vehicle import Car
from schemas.vehicle import VehicleOut
from services.asset_resolver import AssetResolver
from services.exceptions import DatabaseQueryError, VehicleNotFoundError
from services.vehicle_images import resolve_vehicle_images

logger = logging.getLogger(__name__)

DELETED_STATUS = "deleted"


def numeric_ids(ids: Iterable) -> List[int]:
    out = []
    for raw in ids:
        try:
            out.append(int(str(raw).strip()))
        except (TypeError, ValueError):
            logger.debug(f"Ignoring non-numeric vehicle id {raw!r}")
    return sorted(set(out))


def make_model_options(vehicles: Iterable[VehicleOut]) -> Dict[str, List[str]]:
    """
    Brand -> distinct models, for the calendar make/model pickers.

    The brand is the first token of the display name with any hyphenated
    sub-line cut off ('Mercedes-AMG C43' -> 'Mercedes'); models keep
    first-seen order.
    """
    mapping: Dict[str, List[str]] = {}
    for vehicle in vehicles:
        brand = vehicle.brand
        if not brand:
            continue
        models = mapping.setdefault(brand, [])
        model = (vehicle.model or "").strip()
        if model and model.lower() not in (m.lower() for m in models):
            models.append(model)
    return mapping


class VehicleService:
    """
    Vehicle reads against the ``cars`` table plus photo resolution.

    Bulk reads (``fetch_vehicles_by_ids``) return raw vehicles; photo
    resolution is layered on by callers that need it.
    """

    def __init__(self, db: AsyncSession, resolver: Optional[AssetResolver] = None):
        self.db = db
        self.resolver = resolver

    async def fetch_vehicles_by_ids(self, ids: Iterable) -> Dict[str, VehicleOut]:
        """
        Fetches every referenced vehicle in a single IN query.

        Returns:
            dict: vehicle id (as string) -> VehicleOut; unknown ids are absent
        """
        wanted = numeric_ids(ids)
        if not wanted:
            return {}
        try:
            result = await self.db.execute(select(Car).where(Car.id.in_(wanted)))
            cars = result.scalars().all()
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))
        return {str(car.id): VehicleOut.model_validate(car) for car in cars}

    async def get_vehicle_by_id(self, vehicle_id) -> VehicleOut:
        """
        Single-vehicle lookup.

        Raises:
            VehicleNotFoundError: no vehicle with that id
        """
        wanted = numeric_ids([vehicle_id])
        found = await self.fetch_vehicles_by_ids(wanted)
        vehicle = found.get(str(wanted[0])) if wanted else None
        if vehicle is None:
            raise VehicleNotFoundError(vehicle_id)
        return vehicle

    @track_performance(service_name="VehicleService")
    async def get_vehicle_with_images(self, vehicle_id) -> VehicleOut:
        vehicle = await self.get_vehicle_by_id(vehicle_id)
        return await self.attach_images(vehicle)

    @track_performance(service_name="VehicleService")
    async def list_vehicles_with_images(self, make: Optional[str] = None, model: Optional[str] = None) -> List[VehicleOut]:
        """
        Non-deleted vehicles ordered by id, each with resolved photos.

        Args:
            make: case-insensitive prefix match on the first word ('Mercedes AMG' matches 'Mercedes-AMG')
            model: case-insensitive substring match on the model
        """
        stmt = select(Car).where(or_(Car.status.is_(None), Car.status != DELETED_STATUS))
        if make and make.strip():
            first_part = make.strip().split()[0]
            stmt = stmt.where(func.lower(Car.make).like(f"{first_part.lower()}%"))
        if model and model.strip():
            stmt = stmt.where(func.lower(Car.model).like(f"%{model.strip().lower()}%"))
        stmt = stmt.order_by(Car.id)

        try:
            result = await self.db.execute(stmt)
            vehicles = [VehicleOut.model_validate(car) for car in result.scalars().all()]
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

        return list(await asyncio.gather(*(self.attach_images(vehicle) for vehicle in vehicles)))

    async def fetch_vehicle_ids_by_query(self, query: str) -> List[int]:
        """Ids of vehicles whose make or model contains ``query`` (case-insensitive)."""
        text = (query or "").strip().lower()
        if not text:
            return []
        pattern = f"%{text}%"
        try:
            result = await self.db.execute(
                select(Car.id).where(
                    or_(func.lower(Car.make).like(pattern), func.lower(Car.model).like(pattern))
                )
            )
            return [row[0] for row in result.all()]
        except SQLAlchemyError as e:
            raise DatabaseQueryError(str(e))

    async def attach_images(self, vehicle: VehicleOut) -> VehicleOut:
        """Returns a copy with bucket photos, or stored references when the bucket has none."""
        if self.resolver is None:
            return vehicle
        return await resolve_vehicle_images(self.resolver, vehicle, get_placeholder_image_url())
