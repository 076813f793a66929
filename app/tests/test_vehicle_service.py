import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from sqlalchemy.exc import SQLAlchemyError

from models.vehicle import Car
from schemas.vehicle import VehicleOut
from services.exceptions import DatabaseQueryError, VehicleNotFoundError
from services.vehicle_service import VehicleService, make_model_options, numeric_ids
from services.asset_resolver import AssetResolver
from services.vehicle_images import name_variants, resolve_vehicle_images
from conftest import InMemoryAssetStorage, asset_url


@pytest_asyncio.fixture
async def cars(async_db_session):
    rows = [
        Car(id=1, make="Mercedes-AMG", model="C43", name="Mercedes-AMG C43", price_per_day=120.0),
        Car(id=2, make="Audi", model="Q7", name="Audi Q7", image_url="https://cdn.test/q7.jpg"),
        Car(id=3, make="Audi", model="A4", name=None, photo_gallery=["https://cdn.test/a4-1.jpg"]),
        Car(id=4, make="Audi", model="A6", name="Audi A6", status="deleted"),
    ]
    async_db_session.add_all(rows)
    await async_db_session.commit()
    return rows


@pytest.mark.asyncio
async def test_fetch_vehicles_by_ids_single_query(async_db_session, cars):
    svc = VehicleService(async_db_session)

    found = await svc.fetch_vehicles_by_ids(["1", 2, "999", "abc"])

    assert set(found) == {"1", "2"}
    assert found["1"].price_per_day == 120.0


@pytest.mark.asyncio
async def test_fetch_vehicles_by_ids_empty_input_skips_query():
    db = AsyncMock()
    assert await VehicleService(db).fetch_vehicles_by_ids([]) == {}
    db.execute.assert_not_called()


@pytest.mark.asyncio
async def test_fetch_vehicles_by_ids_wraps_store_errors():
    db = AsyncMock()
    db.execute.side_effect = SQLAlchemyError("connection reset")

    with pytest.raises(DatabaseQueryError):
        await VehicleService(db).fetch_vehicles_by_ids([1])


@pytest.mark.asyncio
async def test_get_vehicle_by_id_not_found(async_db_session, cars):
    with pytest.raises(VehicleNotFoundError) as exc:
        await VehicleService(async_db_session).get_vehicle_by_id(999)
    assert "999" in str(exc.value)


@pytest.mark.asyncio
async def test_get_vehicle_by_id_accepts_padded_text(async_db_session, cars):
    vehicle = await VehicleService(async_db_session).get_vehicle_by_id("002")
    assert vehicle.model == "Q7"


@pytest.mark.asyncio
async def test_get_vehicle_with_images_from_bucket(async_db_session, cars, resolver):
    vehicle = await VehicleService(async_db_session, resolver).get_vehicle_with_images(1)

    assert vehicle.primary_image == asset_url("mercedes-c43", "c43-main.jpg")
    assert vehicle.gallery[0] == vehicle.primary_image


@pytest.mark.asyncio
async def test_list_vehicles_skips_deleted_and_filters(async_db_session, cars, resolver):
    svc = VehicleService(async_db_session, resolver)

    all_vehicles = await svc.list_vehicles_with_images()
    audis = await svc.list_vehicles_with_images(make="audi sport", model="q")

    assert [v.id for v in all_vehicles] == [1, 2, 3]
    assert [v.id for v in audis] == [2]
    assert audis[0].primary_image == asset_url("audi-q7", "q7-main.png")


@pytest.mark.asyncio
async def test_list_vehicles_falls_back_to_stored_references(async_db_session, cars, resolver):
    [a4] = await VehicleService(async_db_session, resolver).list_vehicles_with_images(model="a4")

    assert a4.primary_image == "/images/car-placeholder.jpg"
    assert a4.gallery == ["https://cdn.test/a4-1.jpg"]


@pytest.mark.asyncio
async def test_fetch_vehicle_ids_by_query(async_db_session, cars):
    svc = VehicleService(async_db_session)

    assert sorted(await svc.fetch_vehicle_ids_by_query("AUDI")) == [2, 3, 4]
    assert await svc.fetch_vehicle_ids_by_query("c43") == [1]
    assert await svc.fetch_vehicle_ids_by_query("   ") == []


def test_make_model_options_cuts_sub_brand():
    vehicles = [
        VehicleOut(id=1, make="Mercedes-AMG", model="C43"),
        VehicleOut(id=2, make="Mercedes", model="E220"),
        VehicleOut(id=3, make="Audi", model="Q7"),
        VehicleOut(id=4, make="Audi", model="q7"),
        VehicleOut(id=5, make="", model=""),
    ]

    assert make_model_options(vehicles) == {"Mercedes": ["C43", "E220"], "Audi": ["Q7"]}


def test_numeric_ids():
    assert numeric_ids(["3", 1, " 2 ", "x", None, 3]) == [1, 2, 3]


def test_name_variants_are_distinct():
    vehicle = VehicleOut(id=1, make="Audi", model="Q7", name="Audi Q7")

    assert name_variants(vehicle) == [
        ("display-name", "Audi Q7"),
        ("model", "Q7"),
    ]


def test_name_variants_sharing_a_folder_key_collapse():
    vehicle = VehicleOut(id=1, make="Mercedes", model="C43", name="Mercedes-AMG C43")

    assert name_variants(vehicle) == [("display-name", "Mercedes-AMG C43"), ("model", "C43")]


@pytest.mark.asyncio
async def test_missing_photos_list_each_folder_once():
    storage = InMemoryAssetStorage()
    vehicle = VehicleOut(id=1, make="Mercedes", model="C43", name="Mercedes-AMG C43",
                         image_url="https://cdn.test/c43.jpg",
                         photo_gallery=["https://cdn.test/c43.jpg", "https://cdn.test/c43-2.jpg"])

    resolved = await resolve_vehicle_images(AssetResolver(storage), vehicle)

    assert storage.listed == ["mercedes-c43", "c43"]
    assert resolved.primary_image == "https://cdn.test/c43.jpg"
    assert resolved.secondary_images == ["https://cdn.test/c43-2.jpg"]


@pytest.mark.asyncio
async def test_resolved_vehicle_carries_gallery_without_primary(resolver):
    vehicle = VehicleOut(id=1, make="Mercedes-AMG", model="C43")

    resolved = await resolve_vehicle_images(resolver, vehicle)

    assert resolved.primary_image == asset_url("mercedes-c43", "c43-main.jpg")
    assert resolved.secondary_images == [
        asset_url("mercedes-c43", "c43-2.jpg"),
        asset_url("mercedes-c43", "c43-3.jpg"),
    ]
