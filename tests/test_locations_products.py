import pytest

from app.core.exceptions import AppException, NotFoundError, ValidationError
from app.constants.error_codes import ErrorCode
from app.models.enums.location_type import LocationType
from app.schemas.inventory.location_schemas import InventoryLocationCreate, InventoryLocationUpdate
from app.schemas.masters.product_schemas import ProductCreate, InventorySettingsUpdate
from app.services.inventory.inventory_location_service import (
    create_location,
    get_location,
    list_locations,
    update_location,
    deactivate_location,
    reactivate_location,
)
from app.services.masters.product_service import (
    create_product,
    get_product,
    list_products,
    update_inventory_settings,
)


async def test_location_code_is_normalised_and_unique(db, actor):
    created = await create_location(db, InventoryLocationCreate(code="WH1", name="Main", capacity=200), actor)

    assert created.code == "wh1"
    assert created.current_usage == 0
    assert created.available_capacity == 200

    with pytest.raises(AppException) as exc:
        await create_location(db, InventoryLocationCreate(code="wh1", name="Copy"), actor)
    assert exc.value.error_code == ErrorCode.LOCATION_CODE_EXISTS


async def test_location_usage_reflects_stock(db, actor, make_product, receive):
    location = await create_location(db, InventoryLocationCreate(code="WH1", name="Main", capacity=200), actor)
    product = await make_product()
    await receive(product, location, 50)

    fetched = await get_location(db, location.id)

    assert fetched.current_usage == 50
    assert fetched.usage_percentage == 25
    assert fetched.available_capacity == 150


async def test_location_update_uses_version(db, actor):
    location = await create_location(db, InventoryLocationCreate(code="WH1", name="Main"), actor)

    updated = await update_location(db, location.id, InventoryLocationUpdate(name="Central", version=1), actor)
    assert updated.name == "Central"
    assert updated.version == 2

    with pytest.raises(AppException) as exc:
        await update_location(db, location.id, InventoryLocationUpdate(name="Stale", version=1), actor)
    assert exc.value.error_code == ErrorCode.LOCATION_VERSION_CONFLICT

    with pytest.raises(ValidationError):
        await update_location(db, location.id, InventoryLocationUpdate(name="Central", version=2), actor)


async def test_location_activation_cycle(db, actor):
    location = await create_location(db, InventoryLocationCreate(code="WH1", name="Main"), actor)
    location_id = location.id

    assert (await deactivate_location(db, location_id, actor)).is_active is False
    assert (await list_locations(db, active_only=True, page=1, page_size=20)).total == 0
    assert (await list_locations(db, active_only=False, page=1, page_size=20)).total == 1

    with pytest.raises(AppException) as exc:
        await deactivate_location(db, location_id, actor)
    assert exc.value.error_code == ErrorCode.LOCATION_STATE_INVALID

    assert (await reactivate_location(db, location_id, actor)).is_active is True

    with pytest.raises(NotFoundError):
        await reactivate_location(db, 999, actor)


async def test_location_list_filters(db, actor):
    await create_location(db, InventoryLocationCreate(code="WH1", name="Main Warehouse"), actor)
    await create_location(db, InventoryLocationCreate(code="ST1", name="High Street", type=LocationType.store), actor)

    stores = await list_locations(db, active_only=True, page=1, page_size=20, location_type=LocationType.store)
    assert [l.code for l in stores.items] == ["st1"]

    found = await list_locations(db, active_only=True, page=1, page_size=20, search="warehouse")
    assert [l.code for l in found.items] == ["wh1"]


async def test_product_settings(db, actor):
    product = await create_product(db, ProductCreate(sku="CH-1", name="Chair"), actor)

    assert product.stock == 0
    assert product.reorder_threshold is None

    updated = await update_inventory_settings(
        db, product.id, InventorySettingsUpdate(reorder_threshold=15, lead_time_days=4, version=1), actor
    )
    assert updated.reorder_threshold == 15
    assert updated.lead_time_days == 4
    assert updated.version == 2

    with pytest.raises(AppException) as exc:
        await update_inventory_settings(
            db, product.id, InventorySettingsUpdate(reorder_threshold=3, version=1), actor
        )
    assert exc.value.error_code == ErrorCode.PRODUCT_VERSION_CONFLICT


async def test_product_sku_unique_and_search(db, actor):
    await create_product(db, ProductCreate(sku="CH-1", name="Chair"), actor)
    await create_product(db, ProductCreate(sku="TB-1", name="Table"), actor)

    with pytest.raises(AppException) as exc:
        await create_product(db, ProductCreate(sku="CH-1", name="Other"), actor)
    assert exc.value.error_code == ErrorCode.PRODUCT_SKU_EXISTS

    found = await list_products(db, search="tab", status=None, page=1, page_size=20)
    assert [p.sku for p in found.items] == ["TB-1"]

    with pytest.raises(NotFoundError):
        await get_product(db, 999)
