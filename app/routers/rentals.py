from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.auth_handler import Actor, require_actor
from core.db import get_db
from exceptions import ValidationError
from schemas.booking import BookingPage, BookingQuery
from schemas.calendar import CalendarFilters
from services.asset_resolver import AssetResolver, get_asset_resolver
from services.booking_service import BookingService, resolve_status_filter
from services.calendar_projector import CalendarProjector

router = APIRouter(prefix="/rentals", tags=["rentals"])


def booking_query_params(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    sort_by: Optional[str] = "start_date",
    sort_order: str = "desc",
    search: str = "",
    status: Optional[str] = None,
) -> BookingQuery:
    try:
        return BookingQuery(
            page=page,
            page_size=page_size,
            sort_by=sort_by,
            sort_order=sort_order,
            search=search,
            status=status,
        )
    except PydanticValidationError as e:
        field = str(e.errors()[0]["loc"][0]) if e.errors() else None
        raise ValidationError(f"Invalid query parameters: {field}", field)


@router.get("/history", response_model=BookingPage)
async def rentals_history(
    query: BookingQuery = Depends(booking_query_params),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    return await BookingService(db, resolver).fetch_rentals_history(actor_id=actor.id, query=query)


@router.get("/calendar")
async def rentals_calendar(
    month: str,
    car_id: Optional[str] = None,
    status: Optional[str] = None,
    make: Optional[str] = None,
    model: Optional[str] = None,
    timezone: Optional[str] = None,
    include_terminal: bool = False,
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    """The month's rentals and their pickup/return day index."""
    # asking for a terminal status asks for terminal records
    resolved_status = resolve_status_filter(status)
    try:
        filters = CalendarFilters(
            make=make,
            model=model,
            car_id=car_id,
            include_terminal=include_terminal or (resolved_status is not None and resolved_status.is_terminal),
            timezone=timezone,
        )
    except PydanticValidationError:
        raise ValidationError(f"Unknown timezone: {timezone}", "timezone")

    items = await BookingService(db, resolver).fetch_rentals_calendar_page(
        actor_id=actor.id, month=month, car_id=car_id, status=status
    )
    calendar = CalendarProjector().project(items, filters)
    return {"items": items, "calendar": calendar, "days": calendar.days()}


@router.get("/active")
async def active_rentals(
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    return {"items": await BookingService(db, resolver).fetch_active_rentals(actor.id)}


@router.get("/recent")
async def recent_rentals(
    limit: int = Query(5, ge=1, le=50),
    actor: Actor = Depends(require_actor),
    db: AsyncSession = Depends(get_db),
    resolver: AssetResolver = Depends(get_asset_resolver),
):
    return {"items": await BookingService(db, resolver).fetch_recent_rentals(actor.id, limit=limit)}
