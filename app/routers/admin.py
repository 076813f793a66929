from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from auth.auth_handler import require_actor
from core.db import get_db
from routers.rentals import booking_query_params
from schemas.booking import BookingPage, BookingQuery
from services.asset_resolver import AssetResolver, get_asset_resolver
from services.booking_service import BookingService

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_actor)])


@router.get("/requests", response_model=BookingPage)
async def list_requests(
    query: BookingQuery = Depends(booking_query_params),
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    """Booking requests, newest first, with the rental each one became."""
    return await BookingService(db, resolver).fetch_requests(query)


@router.get("/rentals", response_model=BookingPage)
async def list_rentals(
    query: BookingQuery = Depends(booking_query_params),
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    """Every rental except pending ones, newest first."""
    return await BookingService(db, resolver).fetch_rentals(query)
