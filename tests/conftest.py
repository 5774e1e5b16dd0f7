import os

os.environ.setdefault("APP_ENV", "development")
os.environ.setdefault("DB_TYPE", "sqlite")
os.environ.setdefault("SQLITE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("ALERT_WEBHOOK_URLS", "")

from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.core.db import Base
from app.models.inventory.inventory_location_models import InventoryLocation
from app.models.masters.product_models import Product
from app.schemas.auth.actor_schemas import Actor
from app.schemas.inventory.inventory_schemas import BatchCreateRequest, BatchData
from app.services.common.cache_service import InMemoryCache, InventoryCache
from app.services.common.notification_service import Notifier, EventBroadcaster
from app.services.inventory.inventory_service import InventoryService
from app.services.inventory.reorder_alert_service import ReorderAlertService


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    async def notify(self, alert_type, severity, message, details):
        self.sent.append(
            {"alert_type": alert_type, "severity": severity, "message": message, "details": details}
        )


class RecordingBroadcaster(EventBroadcaster):
    def __init__(self):
        self.events = []

    async def publish(self, event, payload):
        self.events.append((event, payload))

    def names(self):
        return [name for name, _ in self.events]


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _fk_on(dbapi_connection, _):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def actor():
    return Actor(id=7, role="admin", username="alice")


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def cache():
    return InventoryCache(InMemoryCache())


@pytest.fixture
def inventory(cache, notifier, broadcaster):
    return InventoryService(cache, notifier, broadcaster)


@pytest.fixture
def alerts(notifier, broadcaster):
    return ReorderAlertService(notifier, broadcaster)


@pytest.fixture
def make_product(db):
    async def _make(sku="SKU-1", name="Widget", **kwargs):
        product = Product(sku=sku, name=name, price=Decimal("9.99"), created_by_id=1, **kwargs)
        db.add(product)
        await db.commit()
        return product
    return _make


@pytest.fixture
def make_location(db):
    async def _make(code="wh1", name="Main Warehouse", **kwargs):
        location = InventoryLocation(code=code, name=name, created_by_id=1, **kwargs)
        db.add(location)
        await db.commit()
        return location
    return _make


@pytest.fixture
def receive(inventory, db, actor):
    """Receive a batch so a record exists at the location."""
    async def _receive(product, location, quantity, batch="B1", cost="5.00", **batch_fields):
        payload = BatchCreateRequest(
            product_id=product.id,
            location_id=location.id,
            batch=BatchData(
                batch_number=batch,
                quantity=quantity,
                cost_price=Decimal(cost) if cost is not None else None,
                **batch_fields,
            ),
        )
        return await inventory.add_batch(db, payload, actor)
    return _receive
