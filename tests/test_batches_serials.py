from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.core.exceptions import (
    DuplicateBatchError,
    DuplicateSerialError,
    NotFoundError,
    ValidationError,
)
from app.models.enums.inventory_transaction_status import TransactionType, ReferenceType
from app.models.masters.product_models import Product
from app.schemas.inventory.inventory_schemas import SerialTrackRequest


async def test_add_batch_creates_record_and_purchase(db, inventory, actor, make_product, make_location, receive, broadcaster):
    product = await make_product()
    location = await make_location()
    expires = datetime(2030, 1, 1, tzinfo=timezone.utc)

    result = await receive(product, location, 20, batch="B1", cost="5.00", expiration_date=expires)

    assert result.record.quantity == 20
    assert result.record.batch_number == "B1"
    assert result.record.cost_price == Decimal("5.00")
    assert result.record.inventory_value == Decimal("100.00")
    assert result.transaction.transaction_type == TransactionType.purchase
    assert result.transaction.reference_id == "BATCH-B1"
    assert result.transaction.reference_type == ReferenceType.purchase
    assert result.transaction.to_location_id == location.id
    assert (await db.get(Product, product.id, populate_existing=True)).stock == 20
    assert "batch_added" in broadcaster.names()


async def test_duplicate_batch_is_rejected(db, make_product, make_location, receive):
    product = await make_product()
    location = await make_location()
    await receive(product, location, 5, batch="B1")

    with pytest.raises(DuplicateBatchError):
        await receive(product, location, 5, batch="B1")


async def test_same_batch_number_allowed_elsewhere(make_product, make_location, receive):
    product = await make_product()
    north = await make_location(code="north", name="North")
    south = await make_location(code="south", name="South")

    await receive(product, north, 5, batch="B1")
    result = await receive(product, south, 5, batch="B1")

    assert result.record.location_id == south.id


async def test_batch_serial_count_must_match(make_product, make_location, receive):
    product = await make_product()
    location = await make_location()

    with pytest.raises(ValidationError):
        await receive(product, location, 3, serial_numbers=["A", "B"])


async def test_batch_with_unknown_product(db, make_location, receive):
    location = await make_location()
    ghost = Product(id=404, sku="none", name="none")

    with pytest.raises(NotFoundError):
        await receive(ghost, location, 1)


async def test_track_serials_increments_quantity(db, inventory, actor, make_product, make_location):
    product = await make_product()
    location = await make_location()

    first = await inventory.track_serials(
        db,
        SerialTrackRequest(product_id=product.id, location_id=location.id, serial_numbers=["S1", "S2"]),
        actor,
    )
    second = await inventory.track_serials(
        db,
        SerialTrackRequest(product_id=product.id, location_id=location.id, serial_numbers=["S3"]),
        actor,
    )

    assert first.record.quantity == 2
    assert second.record.quantity == 3
    assert second.record.serial_numbers == ["S1", "S2", "S3"]
    assert second.transaction.transaction_type == TransactionType.adjustment
    assert second.transaction.reference_type == ReferenceType.serial_tracking


async def test_serials_are_unique_platform_wide(db, inventory, actor, make_product, make_location):
    product = await make_product()
    north = await make_location(code="north", name="North")
    south = await make_location(code="south", name="South")
    product_id, south_id = product.id, south.id

    await inventory.track_serials(
        db, SerialTrackRequest(product_id=product_id, location_id=north.id, serial_numbers=["S1"]), actor
    )

    with pytest.raises(DuplicateSerialError):
        await inventory.track_serials(
            db, SerialTrackRequest(product_id=product_id, location_id=south_id, serial_numbers=["S1"]), actor
        )


async def test_track_serials_on_untracked_stock_sets_quantity_to_serial_count(
    db, inventory, actor, make_product, make_location, receive
):
    product = await make_product()
    location = await make_location()
    await receive(product, location, 20, batch="B1")
    product_id, location_id = product.id, location.id

    result = await inventory.track_serials(
        db,
        SerialTrackRequest(
            product_id=product_id, location_id=location_id, batch_number="B1", serial_numbers=["S1", "S2"]
        ),
        actor,
    )

    assert result.record.quantity == 2
    assert result.record.serial_numbers == ["S1", "S2"]
    assert result.transaction.transaction_type == TransactionType.adjustment
    assert result.transaction.quantity == 18
    assert result.transaction.applied_quantity == 18
    assert result.transaction.from_location_id == location_id
    assert (await db.get(Product, product_id, populate_existing=True)).stock == 2

    found = await inventory.find_serial(db, "S2")
    assert found.batch_number == "B1"


async def test_track_serials_on_matching_untracked_count_only_registers(
    db, inventory, actor, make_product, make_location, receive
):
    product = await make_product()
    location = await make_location()
    await receive(product, location, 2, batch="LOT")

    result = await inventory.track_serials(
        db,
        SerialTrackRequest(
            product_id=product.id, location_id=location.id, batch_number="LOT", serial_numbers=["S1", "S2"]
        ),
        actor,
    )

    assert result.record.quantity == 2
    assert result.record.serial_numbers == ["S1", "S2"]
    assert result.transaction.quantity == 0


async def test_find_serial(db, inventory, actor, make_product, make_location, receive):
    product = await make_product()
    location = await make_location()
    await receive(product, location, 1, batch="B7", serial_numbers=["SN-42"])

    found = await inventory.find_serial(db, "SN-42")

    assert found.product_id == product.id
    assert found.location_id == location.id
    assert found.batch_number == "B7"

    with pytest.raises(NotFoundError):
        await inventory.find_serial(db, "SN-404")
