import pytest

from app.core.exceptions import InvalidStateError, NotFoundError
from app.models.enums.inventory_transaction_status import TransactionType
from app.models.enums.reorder_alert_status import AlertStatus, AlertPriority
from app.models.masters.product_models import Product
from app.schemas.inventory.inventory_schemas import InventoryUpdateRequest, StockTransferRequest
from app.services.inventory.reorder_alert_service import alert_priority


def test_priority_thresholds():
    assert alert_priority(9, 10) == AlertPriority.medium
    assert alert_priority(5, 10) == AlertPriority.high
    assert alert_priority(0, 10) == AlertPriority.high
    assert alert_priority(6, 10) == AlertPriority.medium


async def test_scan_creates_alert_at_or_below_threshold(db, alerts, make_product, make_location, receive, notifier):
    low = await make_product(sku="LOW", name="Low", reorder_threshold=10, reorder_quantity=40, supplier_id=3)
    plenty = await make_product(sku="OK", name="Plenty", reorder_threshold=10)
    location = await make_location()
    await receive(low, location, 10)
    await receive(plenty, location, 11)

    result = await alerts.scan_and_trigger(db)

    assert result.products_scanned == 2
    assert len(result.alerts_created) == 1
    alert = result.alerts_created[0]
    assert alert.product_id == low.id
    assert alert.location_id is None
    assert alert.current_stock == 10
    assert alert.threshold == 10
    assert alert.status == AlertStatus.pending
    assert alert.priority == AlertPriority.medium
    assert alert.suggested_quantity == 40
    assert alert.supplier_id == 3
    assert alert.triggered_at is not None
    assert [e.status for e in alert.events] == [AlertStatus.pending]

    assert len(notifier.sent) == 1
    assert notifier.sent[0]["severity"] == "medium"
    assert notifier.sent[0]["details"]["suggested_reorder"] == 40


async def test_scan_uses_default_threshold(db, alerts, make_product):
    await make_product(sku="EMPTY", name="Never stocked")

    result = await alerts.scan_and_trigger(db)

    assert len(result.alerts_created) == 1
    assert result.alerts_created[0].threshold == 10
    assert result.alerts_created[0].priority == AlertPriority.high


async def test_scan_skips_untracked_products(db, alerts, make_product):
    await make_product(sku="SVC", name="Service", track_inventory=False)

    result = await alerts.scan_and_trigger(db)

    assert result.products_scanned == 0
    assert result.alerts_created == []


async def test_scan_is_idempotent_while_alert_open(db, alerts, make_product):
    await make_product(sku="LOW", name="Low")

    first = await alerts.scan_and_trigger(db)
    second = await alerts.scan_and_trigger(db)

    assert len(first.alerts_created) == 1
    assert second.alerts_created == []
    listed = await alerts.list_alerts(db, open_only=True)
    assert listed.total == 1


async def test_resolved_alert_allows_new_one(db, alerts, actor, make_product):
    await make_product(sku="LOW", name="Low")
    first = await alerts.scan_and_trigger(db)
    await alerts.resolve(db, first.alerts_created[0].id, actor, "ordered")

    second = await alerts.scan_and_trigger(db)

    assert len(second.alerts_created) == 1


async def test_scan_location_uses_location_stock(db, alerts, make_product, make_location, receive):
    product = await make_product(sku="P", name="Spread", reorder_threshold=5)
    north = await make_location(code="north", name="North")
    south = await make_location(code="south", name="South")
    await receive(product, north, 3)
    await receive(product, south, 30)

    north_scan = await alerts.scan_location(db, north.id)
    south_scan = await alerts.scan_location(db, south.id)
    again = await alerts.scan_location(db, north.id)

    assert len(north_scan.alerts_created) == 1
    assert north_scan.alerts_created[0].location_id == north.id
    assert north_scan.alerts_created[0].location_name == "North"
    assert north_scan.alerts_created[0].current_stock == 3
    assert south_scan.alerts_created == []
    assert again.alerts_created == []


async def test_scan_location_unknown(db, alerts):
    with pytest.raises(NotFoundError):
        await alerts.scan_location(db, 12345)


async def test_scan_all_locations(db, alerts, make_product, make_location, receive):
    product = await make_product(sku="P", name="Spread", reorder_threshold=5)
    north = await make_location(code="north", name="North")
    south = await make_location(code="south", name="South")
    await receive(product, north, 2)
    await receive(product, south, 4)

    result = await alerts.scan_all_locations(db)

    assert result.locations_scanned == 2
    assert sorted(a.location_id for a in result.alerts_created) == sorted([north.id, south.id])


async def test_alert_lifecycle(db, alerts, actor, make_product, notifier):
    await make_product(sku="LOW", name="Low")
    alert = (await alerts.scan_and_trigger(db)).alerts_created[0]

    acknowledged = await alerts.acknowledge(db, alert.id, actor, "calling supplier")
    assert acknowledged.status == AlertStatus.acknowledged
    assert acknowledged.acknowledged_by_id == actor.id
    assert acknowledged.acknowledged_at is not None
    assert acknowledged.notes == "calling supplier"

    with pytest.raises(InvalidStateError):
        await alerts.acknowledge(db, alert.id, actor)

    resolved = await alerts.resolve(db, alert.id, actor)
    assert resolved.status == AlertStatus.resolved
    assert resolved.resolved_by_id == actor.id
    assert [e.status for e in resolved.events] == [
        AlertStatus.pending,
        AlertStatus.acknowledged,
        AlertStatus.resolved,
    ]

    with pytest.raises(InvalidStateError):
        await alerts.resolve(db, alert.id, actor)
    with pytest.raises(InvalidStateError):
        await alerts.cancel(db, alert.id, actor)

    codes = [n["alert_type"] for n in notifier.sent]
    assert codes[-2:] == ["REORDER_ALERT_ACKNOWLEDGED", "REORDER_ALERT_RESOLVED"]


async def test_cancel_only_from_open_state(db, alerts, actor, make_product):
    await make_product(sku="A", name="A")
    await make_product(sku="B", name="B")
    first, second = (await alerts.scan_and_trigger(db)).alerts_created

    cancelled = await alerts.cancel(db, first.id, actor, "duplicate")
    assert cancelled.status == AlertStatus.cancelled

    await alerts.acknowledge(db, second.id, actor)
    with pytest.raises(InvalidStateError):
        await alerts.cancel(db, second.id, actor)


async def test_unknown_alert(db, alerts, actor):
    with pytest.raises(NotFoundError):
        await alerts.acknowledge(db, 999, actor)


async def test_list_alerts_filters(db, alerts, actor, make_product):
    a = await make_product(sku="A", name="A")
    await make_product(sku="B", name="B")
    created = (await alerts.scan_and_trigger(db)).alerts_created
    await alerts.acknowledge(db, created[0].id, actor)

    assert (await alerts.list_alerts(db)).total == 2
    assert (await alerts.list_alerts(db, status=AlertStatus.acknowledged)).total == 1
    assert (await alerts.list_alerts(db, open_only=True)).total == 1
    assert (await alerts.list_alerts(db, product_id=a.id)).items[0].product_sku == "A"
    assert (await alerts.list_alerts(db, priority=AlertPriority.high)).total == 2


async def test_end_to_end_reorder_flow(db, inventory, alerts, actor, make_product, make_location, receive):
    product = await make_product(sku="P1", name="Chair", reorder_threshold=10)
    l1 = await make_location(code="WH1", name="Warehouse 1")
    l2 = await make_location(code="WH2", name="Warehouse 2")
    pid, l1_id, l2_id = product.id, l1.id, l2.id

    await receive(product, l1, 20, batch="B1", cost="5.0")

    sale = await inventory.update_quantity(
        db,
        InventoryUpdateRequest(
            product_id=pid, location_id=l1_id, quantity_change=-5, transaction_type=TransactionType.sale
        ),
        actor,
    )
    assert sale.new_quantity == 15
    assert sale.transaction.quantity == 5

    moved = await inventory.transfer(
        db,
        StockTransferRequest(product_id=pid, from_location_id=l1_id, to_location_id=l2_id, quantity=10),
        actor,
    )
    assert moved.source.new_quantity == 5
    assert moved.destination.new_quantity == 10
    assert (await db.get(Product, pid, populate_existing=True)).stock == 15

    assert (await alerts.scan_and_trigger(db)).alerts_created == []

    await inventory.update_quantity(
        db, InventoryUpdateRequest(product_id=pid, location_id=l1_id, quantity_change=-4), actor
    )
    assert (await db.get(Product, pid, populate_existing=True)).stock == 11
    assert (await alerts.scan_and_trigger(db)).alerts_created == []

    # only 1 unit left at L1, so the decrement is clamped
    clamped = await inventory.update_quantity(
        db, InventoryUpdateRequest(product_id=pid, location_id=l1_id, quantity_change=-2), actor
    )
    assert clamped.new_quantity == 0
    assert (await db.get(Product, pid, populate_existing=True)).stock == 10

    created = (await alerts.scan_and_trigger(db)).alerts_created
    assert len(created) == 1
    assert created[0].current_stock == 10
    assert created[0].priority == AlertPriority.medium
