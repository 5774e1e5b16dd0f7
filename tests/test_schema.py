from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.db import Base


def test_every_index_is_named():
    unnamed = [
        (table.name, [c.name for c in index.columns])
        for table in Base.metadata.sorted_tables
        for index in table.indexes
        if not index.name
    ]
    assert unnamed == []


async def test_schema_builds_from_metadata():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
            tables = await conn.run_sync(lambda sync: inspect(sync).get_table_names())
            record_indexes = await conn.run_sync(
                lambda sync: {i["name"] for i in inspect(sync).get_indexes("inventory_records")}
            )
    finally:
        await engine.dispose()

    assert {
        "products",
        "inventory_locations",
        "inventory_records",
        "inventory_serials",
        "inventory_movements",
        "inventory_transactions",
        "reorder_alerts",
        "reorder_alert_events",
    } <= set(tables)
    assert "uq_inventory_record_product_location_unbatched" in record_indexes
    assert "ix_inventory_records_batch_number" in record_indexes
