from sqlalchemy import update
from app.models.inventory.inventory_record_models import InventoryRecord
from app.models.enums.inventory_status import InventoryStatus


def _expire_batches_stmt(now, updated_by_id=None):
    where_clause = [
        InventoryRecord.status == InventoryStatus.active,
        InventoryRecord.expiration_date.isnot(None),
        InventoryRecord.expiration_date < now,
    ]

    return (
        update(InventoryRecord)
        .where(*where_clause)
        .values(
            status=InventoryStatus.expired,
            version=InventoryRecord.version + 1,
            last_updated=now,
            updated_by_id=updated_by_id,
        )
        .returning(
            InventoryRecord.id,
            InventoryRecord.product_id,
            InventoryRecord.location_id,
            InventoryRecord.batch_number,
            InventoryRecord.quantity,
        )
        .execution_options(synchronize_session=False)
    )
