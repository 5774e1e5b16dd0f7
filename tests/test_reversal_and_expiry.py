from datetime import timedelta

import pytest
from sqlalchemy import select

from app.core.exceptions import InvalidStateError, InsufficientStockError, NotFoundError
from app.models.enums.inventory_status import InventoryStatus
from app.models.enums.inventory_transaction_status import (
    TransactionType,
    TransactionStatus,
    ReferenceType,
)
from app.models.inventory.inventory_record_models import InventoryRecord
from app.models.inventory.inventory_transaction_models import InventoryTransaction
from app.models.masters.product_models import Product
from app.schemas.inventory.inventory_schemas import InventoryUpdateRequest, StockTransferRequest
from app.services.inventory.inventory_expiry_service import auto_expire_batches
from app.utils.time_utils import utcnow


async def status_of(db, transaction_id):
    tx = await db.get(InventoryTransaction, transaction_id, populate_existing=True)
    return tx.status


async def test_reverse_sale_restores_stock(db, inventory, actor, make_product, make_location, receive):
    product = await make_product()
    location = await make_location()
    await receive(product, location, 10)
    sale = await inventory.update_quantity(
        db,
        InventoryUpdateRequest(
            product_id=product.id, location_id=location.id, quantity_change=-4, transaction_type=TransactionType.sale
        ),
        actor,
    )

    result = await inventory.reverse_transaction(db, sale.transaction.id, actor)

    assert result.new_quantity == 10
    assert result.transaction.transaction_type == TransactionType.adjustment
    assert result.transaction.reference_type == ReferenceType.reversal
    assert result.transaction.related_transaction_id == sale.transaction.id
    assert await status_of(db, sale.transaction.id) == TransactionStatus.reversed
    assert (await db.get(Product, product.id, populate_existing=True)).stock == 10


async def test_reverse_receipt_needs_stock(db, inventory, actor, make_product, make_location, receive):
    product = await make_product()
    location = await make_location()
    receipt = await receive(product, location, 10)
    await inventory.update_quantity(
        db,
        InventoryUpdateRequest(product_id=product.id, location_id=location.id, quantity_change=-8),
        actor,
    )
    receipt_id = receipt.transaction.id

    with pytest.raises(InsufficientStockError):
        await inventory.reverse_transaction(db, receipt_id, actor)

    assert await status_of(db, receipt_id) == TransactionStatus.completed


async def test_reversal_is_single_use(db, inventory, actor, make_product, make_location, receive):
    product = await make_product()
    location = await make_location()
    receipt = await receive(product, location, 10)
    receipt_id = receipt.transaction.id

    await inventory.reverse_transaction(db, receipt_id, actor)

    with pytest.raises(InvalidStateError):
        await inventory.reverse_transaction(db, receipt_id, actor)


async def test_transfers_cannot_be_reversed(db, inventory, actor, make_product, make_location, receive):
    product = await make_product()
    north = await make_location(code="north", name="North")
    south = await make_location(code="south", name="South")
    await receive(product, north, 10)
    await inventory.transfer(
        db,
        StockTransferRequest(product_id=product.id, from_location_id=north.id, to_location_id=south.id, quantity=2),
        actor,
    )
    transfer_id = await db.scalar(
        select(InventoryTransaction.id).where(InventoryTransaction.transaction_type == TransactionType.transfer)
    )

    with pytest.raises(InvalidStateError):
        await inventory.reverse_transaction(db, transfer_id, actor)


async def test_reverse_unknown_transaction(db, inventory, actor):
    with pytest.raises(NotFoundError):
        await inventory.reverse_transaction(db, 4242, actor)


async def test_list_transactions_and_history(db, inventory, actor, make_product, make_location, receive):
    product = await make_product()
    north = await make_location(code="north", name="North")
    south = await make_location(code="south", name="South")
    await receive(product, north, 10)
    await inventory.transfer(
        db,
        StockTransferRequest(product_id=product.id, from_location_id=north.id, to_location_id=south.id, quantity=2),
        actor,
    )

    everything = await inventory.list_transactions(db, product_id=product.id)
    at_south = await inventory.list_transactions(db, location_id=south.id)
    purchases = await inventory.list_transactions(db, transaction_type=TransactionType.purchase)

    assert everything.total == 3
    assert everything.items[0].id > everything.items[-1].id
    assert at_south.total == 2  # both transfer legs name the destination
    assert purchases.total == 1

    history = await inventory.movement_history(db, product.id)
    assert len(history) == 3
    assert {h.location_code for h in history} == {"north", "south"}
    assert len(await inventory.movement_history(db, product.id, south.id)) == 1


async def test_expired_batches_are_flagged(db, cache, notifier, inventory, make_product, make_location, receive):
    product = await make_product(name="Milk")
    location = await make_location()
    past = utcnow() - timedelta(days=1)
    future = utcnow() + timedelta(days=30)
    old = await receive(product, location, 6, batch="OLD", expiration_date=past)
    await receive(product, location, 4, batch="NEW", expiration_date=future)
    await inventory.get_product_inventory(db, product.id)

    count = await auto_expire_batches(db, cache=cache, notifier=notifier)

    assert count == 1
    record = await db.get(InventoryRecord, old.record.id, populate_existing=True)
    assert record.status == InventoryStatus.expired
    assert record.quantity == 6
    assert await cache.get_product(product.id) is None
    assert notifier.sent[-1]["alert_type"] == "BATCH_EXPIRED"
    assert "OLD" in notifier.sent[-1]["message"]

    view = await inventory.get_product_inventory(db, product.id)
    assert view.total_quantity == 10
    assert view.available_quantity == 4

    assert await auto_expire_batches(db, cache=cache) == 0
