import pytest
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

from schemas.booking import BookingRecord
from schemas.vehicle import VehicleOut
from services.exceptions import DatabaseQueryError
from services.record_enricher import RecordEnricher
from conftest import asset_url, make_car, make_rental_row, make_request_row

PLACEHOLDER = "/images/car-placeholder.jpg"


def vehicles_by_id(*cars):
    return {str(car.id): VehicleOut.model_validate(car) for car in cars}


def options_result(rows):
    result = MagicMock()
    result.all.return_value = rows
    return result


def rentals_result(rows):
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    return result


def build_enricher(resolver, vehicles, db=None):
    vehicle_service = SimpleNamespace(fetch_vehicles_by_ids=AsyncMock(return_value=vehicles))
    enricher = RecordEnricher(db or AsyncMock(), resolver, vehicle_service=vehicle_service, placeholder_url=PLACEHOLDER)
    return enricher, vehicle_service


@pytest.mark.asyncio
async def test_enrich_empty_input_does_no_io(resolver):
    db = AsyncMock()
    enricher, vehicle_service = build_enricher(resolver, {}, db=db)

    assert await enricher.enrich([]) == []
    vehicle_service.fetch_vehicles_by_ids.assert_not_called()
    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_one_bulk_vehicle_fetch_and_one_listing_per_vehicle(resolver, c43_storage):
    rows = [
        BookingRecord.from_rental_row(make_rental_row(id=i, options={"childSeat": True}))
        for i in range(1, 6)
    ]
    enricher, vehicle_service = build_enricher(resolver, vehicles_by_id(make_car()))

    enriched = await enricher.enrich(rows)

    assert len(enriched) == 5
    vehicle_service.fetch_vehicles_by_ids.assert_awaited_once()
    assert c43_storage.listed.count("mercedes-c43") == 1
    for record in enriched:
        assert record.vehicle.primary_image == asset_url("mercedes-c43", "c43-main.jpg")


@pytest.mark.asyncio
async def test_output_preserves_input_order(resolver):
    rows = [BookingRecord.from_rental_row(make_rental_row(id=i, options={"simCard": True})) for i in (7, 3, 5)]
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car()))

    enriched = await enricher.enrich(rows)

    assert [record.id for record in enriched] == ["7", "3", "5"]


@pytest.mark.asyncio
async def test_rental_without_options_takes_them_from_its_request(resolver):
    db = AsyncMock()
    db.execute.return_value = options_result([(42, {"childSeat": True, "unlimitedKm": True})])
    row = BookingRecord.from_rental_row(make_rental_row(request_id=42, options=None))
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car()), db=db)

    [record] = await enricher.enrich([row])

    assert record.options.childSeat is True
    assert record.selected_options == ["unlimitedKm", "childSeat"]
    db.execute.assert_awaited_once()


@pytest.mark.asyncio
async def test_rental_own_options_are_kept(resolver):
    db = AsyncMock()
    row = BookingRecord.from_rental_row(make_rental_row(request_id=42, options='{"simCard": true}'))
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car()), db=db)

    [record] = await enricher.enrich([row])

    assert record.options.selected() == ["simCard"]
    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_rental_own_options_with_odd_value_are_not_replaced(resolver):
    db = AsyncMock()
    row = BookingRecord.from_rental_row(make_rental_row(request_id=42, options={"unlimitedKm": True, "childSeat": 2}))
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car()), db=db)

    [record] = await enricher.enrich([row])

    assert record.selected_options == ["unlimitedKm", "childSeat"]
    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_request_inherits_values_from_linked_rental(resolver):
    db = AsyncMock()
    db.execute.return_value = rentals_result([
        make_rental_row(id=900, request_id=42, total_amount="310.50", price_per_day="155.25",
                        contract_url="https://docs.test/contract-900.pdf"),
    ])
    row = BookingRecord.from_request_row(make_request_row(id=42, options={"childSeat": True}))
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car()), db=db)

    [record] = await enricher.enrich([row])

    assert record.linked_rental_id == "900"
    assert record.total_amount == 310.50
    assert record.price_per_day == 155.25
    assert record.contract_url == "https://docs.test/contract-900.pdf"


@pytest.mark.asyncio
async def test_request_without_linked_rental_keeps_own_values(resolver):
    db = AsyncMock()
    db.execute.return_value = rentals_result([])
    row = BookingRecord.from_request_row(
        make_request_row(options={"childSeat": True}, contract_url="https://docs.test/own.pdf")
    )
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car()), db=db)

    [record] = await enricher.enrich([row])

    assert record.linked_rental_id is None
    assert record.total_amount == 200.0
    assert record.price_per_day == 100.0
    assert record.contract_url == "https://docs.test/own.pdf"


@pytest.mark.asyncio
async def test_unknown_vehicle_leaves_vehicle_empty(resolver):
    row = BookingRecord.from_rental_row(make_rental_row(car_id=999, options={"simCard": True}))
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car()))

    [record] = await enricher.enrich([row])

    assert record.vehicle is None
    assert record.vehicle_name == ""


@pytest.mark.asyncio
async def test_bulk_vehicle_failure_degrades_to_no_vehicles(resolver):
    vehicle_service = SimpleNamespace(fetch_vehicles_by_ids=AsyncMock(side_effect=DatabaseQueryError("down")))
    enricher = RecordEnricher(AsyncMock(), resolver, vehicle_service=vehicle_service, placeholder_url=PLACEHOLDER)
    row = BookingRecord.from_rental_row(make_rental_row(options={"simCard": True}))

    [record] = await enricher.enrich([row])

    assert record.vehicle is None
    assert record.id == "100"


@pytest.mark.asyncio
async def test_vehicle_without_bucket_photos_uses_stored_references(resolver):
    car = make_car(id=2, make="Tesla", model="Model 3", name="Tesla Model 3",
                   image_url="https://cdn.test/tesla.jpg", photo_gallery=["https://cdn.test/tesla-2.jpg"])
    row = BookingRecord.from_rental_row(make_rental_row(car_id=2, options={"simCard": True}))
    enricher, _ = build_enricher(resolver, vehicles_by_id(car))

    [record] = await enricher.enrich([row])

    assert record.vehicle.primary_image == "https://cdn.test/tesla.jpg"
    assert record.vehicle.gallery == ["https://cdn.test/tesla-2.jpg"]


@pytest.mark.asyncio
async def test_one_failing_row_does_not_affect_others(resolver, monkeypatch):
    from services import record_enricher as module

    real_resolve = module.resolve_vehicle_images

    async def flaky_resolve(resolver, vehicle, placeholder_url=None):
        if vehicle.id == 2:
            raise RuntimeError("boom")
        return await real_resolve(resolver, vehicle, placeholder_url)

    monkeypatch.setattr(module, "resolve_vehicle_images", flaky_resolve)

    broken_car = make_car(id=2, make="Audi", model="Q7", name="Audi Q7")
    rows = [
        BookingRecord.from_rental_row(make_rental_row(id=1, car_id=1, options={"simCard": True})),
        BookingRecord.from_rental_row(make_rental_row(id=2, car_id=2, options={"simCard": True})),
    ]
    enricher, _ = build_enricher(resolver, vehicles_by_id(make_car(), broken_car))

    good, degraded = await enricher.enrich(rows)

    assert good.vehicle.primary_image == asset_url("mercedes-c43", "c43-main.jpg")
    assert degraded.vehicle.id == 2
    assert degraded.vehicle.primary_image == PLACEHOLDER


def test_numeric_text_is_coerced():
    record = BookingRecord.from_rental_row(make_rental_row(total_amount=" 1 250.50 ", price_per_day="abc"))

    assert record.total_amount == 1250.50
    assert record.price_per_day is None
