from typing import Dict, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.db import get_db
from schemas.vehicle import VehicleOut
from services.asset_resolver import AssetResolver, get_asset_resolver
from services.vehicle_service import VehicleService, make_model_options

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=List[VehicleOut])
async def list_vehicles(
    make: Optional[str] = None,
    model: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    return await VehicleService(db, resolver).list_vehicles_with_images(make=make, model=model)


@router.get("/options")
async def vehicle_options(db: AsyncSession = Depends(get_db)) -> Dict[str, List[str]]:
    """Make -> models mapping for the calendar filters."""
    vehicles = await VehicleService(db).list_vehicles_with_images()
    return make_model_options(vehicles)


@router.get("/{vehicle_id}", response_model=VehicleOut)
async def get_vehicle(
    vehicle_id: str,
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    # VehicleNotFoundError is mapped to 404 by the app-level handler
    return await VehicleService(db, resolver).get_vehicle_with_images(vehicle_id)
