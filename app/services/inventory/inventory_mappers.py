from app.models.inventory.inventory_record_models import InventoryRecord
from app.models.inventory.inventory_transaction_models import InventoryTransaction
from app.schemas.inventory.inventory_schemas import (
    InventoryRecordOut,
    InventoryTransactionOut,
)


def map_record(record: InventoryRecord) -> InventoryRecordOut:
    location = record.location
    return InventoryRecordOut(
        id=record.id,
        product_id=record.product_id,
        location_id=record.location_id,
        location_code=location.code if location else None,
        location_name=location.name if location else None,
        quantity=record.quantity,
        batch_number=record.batch_number,
        serial_numbers=record.serial_numbers,
        expiration_date=record.expiration_date,
        received_date=record.received_date,
        last_updated=record.last_updated,
        status=record.status,
        cost_price=record.cost_price,
        inventory_value=record.inventory_value,
        supplier_id=record.supplier_id,
        notes=record.notes,
        version=record.version,
    )


def map_transaction(tx: InventoryTransaction) -> InventoryTransactionOut:
    return InventoryTransactionOut.model_validate(tx)
