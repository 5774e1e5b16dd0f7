import pytest
from sqlalchemy import update, select, func
from sqlalchemy.exc import IntegrityError

from app.core.config import INVENTORY_UPDATE_MAX_RETRIES
from app.core.exceptions import ConcurrencyConflictError
from app.models.inventory.inventory_record_models import InventoryRecord
from app.models.masters.product_models import Product
from app.schemas.inventory.inventory_schemas import InventoryUpdateRequest
from app.services.inventory import inventory_movement_service as movement


def interfere(monkeypatch, times):
    """Bump the record version right after each read, as a concurrent writer would."""
    real_load = movement.load_record
    seen = {"reads": 0}

    async def racing_load(db, record_id):
        record = await real_load(db, record_id)
        seen["reads"] += 1
        if seen["reads"] <= times:
            await db.execute(
                update(InventoryRecord)
                .where(InventoryRecord.id == record_id)
                .values(quantity=InventoryRecord.quantity + 1, version=InventoryRecord.version + 1)
                .execution_options(synchronize_session=False)
            )
        return record

    monkeypatch.setattr(movement, "load_record", racing_load)
    return seen


async def test_version_conflict_is_retried(db, inventory, actor, make_product, make_location, receive, monkeypatch):
    product = await make_product()
    location = await make_location()
    await receive(product, location, 10)

    seen = interfere(monkeypatch, times=1)
    result = await inventory.update_quantity(
        db,
        InventoryUpdateRequest(product_id=product.id, location_id=location.id, quantity_change=-3),
        actor,
    )

    # the retry re-reads and applies on top of the concurrent +1
    assert result.old_quantity == 11
    assert result.new_quantity == 8
    assert seen["reads"] >= 2
    assert (await db.get(Product, product.id, populate_existing=True)).stock == 8


async def test_conflict_after_retries_exhausted(db, inventory, actor, make_product, make_location, receive, monkeypatch):
    product = await make_product()
    location = await make_location()
    await receive(product, location, 10)
    product_id, location_id = product.id, location.id

    interfere(monkeypatch, times=INVENTORY_UPDATE_MAX_RETRIES)

    with pytest.raises(ConcurrencyConflictError):
        await inventory.update_quantity(
            db,
            InventoryUpdateRequest(product_id=product_id, location_id=location_id, quantity_change=-3),
            actor,
        )

    monkeypatch.undo()
    record = (await db.execute(
        InventoryRecord.__table__.select().where(InventoryRecord.product_id == product_id)
    )).one()
    assert record.quantity == 10
    assert record.version == 2  # receipt only; interfering bumps were rolled back


async def test_one_unbatched_record_per_product_and_location(db, make_product, make_location):
    product = await make_product()
    location = await make_location()
    product_id, location_id = product.id, location.id

    db.add(InventoryRecord(product_id=product_id, location_id=location_id, quantity=1))
    await db.commit()

    db.add(InventoryRecord(product_id=product_id, location_id=location_id, quantity=2))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()

    count = await db.scalar(
        select(func.count(InventoryRecord.id)).where(InventoryRecord.product_id == product_id)
    )
    assert count == 1


async def test_concurrent_unbatched_record_creation_conflicts(db, actor, make_product, make_location, monkeypatch):
    product = await make_product()
    location = await make_location()
    product_id, location_id = product.id, location.id

    db.add(InventoryRecord(product_id=product_id, location_id=location_id, quantity=0))
    await db.commit()

    # a second creator that read before the first one committed
    async def not_found_yet(*args, **kwargs):
        return None

    monkeypatch.setattr(movement, "find_record", not_found_yet)

    with pytest.raises(ConcurrencyConflictError):
        await movement.ensure_record(db, product_id=product_id, location_id=location_id, actor=actor)
    await db.rollback()
