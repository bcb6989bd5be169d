"""
Test configuration and fixtures

Each test gets its own SQLite database file, a private fakeredis server for
the inventory locks, a recording mail service and a temporary artifact
directory.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Optional

import pytest
import pytest_asyncio
import fakeredis
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Set test environment
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["REDIS_URL"] = "redis://localhost:6379/15"
os.environ["EVENT_LOCK_WAIT_SECONDS"] = "1.0"
os.environ["SENDGRID_API_KEY"] = ""
os.environ["LOG_FORMAT"] = "plain"

# Import all models BEFORE creating fixtures (create_all needs them registered)
from quickseats.core.database import Base
from quickseats.core.redis import RedisManager
from quickseats import models  # noqa: F401
from quickseats.models.event import Event
from quickseats.models.order import Order
from quickseats.schemas.catalog import TicketTypeCreate
from quickseats.schemas.event import EventCreate, EventTicketPrice, SeatDefinition
from quickseats.schemas.order import BookingRequest, CustomerInfo, TicketRequest
from quickseats.services.artifact_storage import LocalArtifactStorage
from quickseats.services.availability import AvailabilityService
from quickseats.services.booking import BookingService
from quickseats.services.cancellation import CancellationService
from quickseats.services.catalog import CatalogService
from quickseats.services.email_service import EmailService
from quickseats.services.fulfillment import FulfillmentService
from quickseats.services.inventory import InventoryStore
from quickseats.services.issuance import IssuanceService
from quickseats.services.payment_gateway import PaymentGateway
from quickseats.services.seat_hold import SeatHoldService

GATEWAY_SECRET = "test-gateway-secret"


class RecordingEmailService(EmailService):
    """Renders every message like the real service and keeps it instead of sending"""

    def __init__(self):
        super().__init__(api_key="")
        self.sent: List[dict] = []

    async def send_email(self, to_email, subject, html_content, attachments=None) -> bool:
        self.sent.append({
            "to": to_email,
            "subject": subject,
            "html": html_content,
            "attachments": attachments or [],
        })
        return True


@pytest_asyncio.fixture
async def test_db(tmp_path):
    """Async engine over a fresh database file"""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'quickseats.db'}",
        echo=False,
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_db):
    return async_sessionmaker(
        test_db,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        try:
            yield session
        finally:
            if session.in_transaction():
                await session.rollback()


@pytest_asyncio.fixture
async def redis_client():
    """Lua-capable in-process Redis with its own keyspace"""
    client = fakeredis.FakeAsyncRedis(server=fakeredis.FakeServer(), decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture
def redis_manager(redis_client):
    return RedisManager(redis_client)


@pytest.fixture
def notifier():
    return RecordingEmailService()


@pytest.fixture
def artifact_storage(tmp_path):
    return LocalArtifactStorage(str(tmp_path / "artifacts"), "http://testserver/artifacts")


@pytest.fixture
def gateway():
    return PaymentGateway(secret_key=GATEWAY_SECRET, access_key="test-access", profile_id="test-profile")


# Service fixtures

@pytest.fixture
def store(db_session, redis_manager):
    return InventoryStore(db_session, redis_manager)


@pytest.fixture
def catalog_service(db_session, store):
    return CatalogService(db_session, store)


@pytest.fixture
def availability_service(db_session, store):
    return AvailabilityService(db_session, store)


@pytest.fixture
def seat_hold_service(db_session, store):
    return SeatHoldService(db_session, store)


@pytest.fixture
def booking_service(db_session, store, notifier, artifact_storage, gateway):
    fulfillment = FulfillmentService(db_session, notifier, artifact_storage)
    return BookingService(db_session, store, fulfillment, gateway)


@pytest.fixture
def cancellation_service(db_session, store, notifier):
    return CancellationService(db_session, store, notifier)


@pytest.fixture
def issuance_service(db_session, store):
    return IssuanceService(db_session, store)


# Catalog fixtures

@pytest_asyncio.fixture
async def ticket_types(db_session, catalog_service):
    """A seated type and a counted type, detached so a rollback leaves them readable"""
    vip = await catalog_service.create_ticket_type(TicketTypeCreate(name="VIP", color="#d4af37"))
    general = await catalog_service.create_ticket_type(
        TicketTypeCreate(name="General", has_ticket_count=True)
    )
    db_session.expunge(vip)
    db_session.expunge(general)
    return {"vip": vip, "general": general}


@pytest_asyncio.fixture
async def test_event(db_session, catalog_service, ticket_types) -> Event:
    """
    Seats A1, A2 (500) and B1 (1000) of type VIP; 10 General tickets at 300

    Detached from the session so a service rollback never expires it.
    """
    vip, general = ticket_types["vip"], ticket_types["general"]
    event = await catalog_service.create_event(EventCreate(
        name="Test Concert",
        description="Open air concert",
        location="Colombo",
        start_date_time=datetime.now(timezone.utc) + timedelta(days=30),
        tickets=[
            EventTicketPrice(type_id=vip.id, price=500),
            EventTicketPrice(type_id=general.id, price=300, count=10),
        ],
        seats=[
            SeatDefinition(seat_id="A1", type_id=vip.id),
            SeatDefinition(seat_id="A2", type_id=vip.id),
            SeatDefinition(seat_id="B1", type_id=vip.id, price=1000),
        ],
    ))
    db_session.expunge(event)
    return event


def make_booking_request(
    event_id: int,
    seat_ids=(),
    tickets=(),
    email: str = "buyer@example.com",
) -> BookingRequest:
    return BookingRequest(
        customer=CustomerInfo(
            first_name="Nimal",
            last_name="Perera",
            email=email,
            contact_number="+94771234567",
            country="Sri Lanka",
        ),
        event_id=event_id,
        seat_ids=list(seat_ids),
        tickets=[TicketRequest(ticket_type_id=t, ticket_count=c) for t, c in tickets],
    )


def signed_callback(
    gateway: PaymentGateway,
    order_id: int,
    transaction_uuid: Optional[str],
    decision: str = "ACCEPT",
    transaction_id: str = "7000000000000000000001",
) -> dict:
    """Fields the gateway posts back, signed with the shared secret"""
    fields = {
        "req_reference_number": str(order_id),
        "req_transaction_uuid": transaction_uuid or "",
        "decision": decision,
        "transaction_id": transaction_id,
        "reason_code": "100" if decision == "ACCEPT" else "481",
    }
    fields["signed_field_names"] = ",".join(list(fields) + ["signed_field_names"])
    fields["signature"] = gateway.sign(fields)
    return fields


async def reload_order(session: AsyncSession, order_id: int) -> Order:
    return await session.get(Order, order_id, populate_existing=True)


@pytest_asyncio.fixture
async def client(session_factory, redis_client, notifier, artifact_storage, gateway):
    """HTTP client over the app with storage and collaborators swapped for test doubles"""
    from quickseats.main import app
    from quickseats.api import deps
    from quickseats.api.v1.endpoints import health
    from quickseats.core.database import get_session
    from quickseats.core.metrics import HealthChecker
    from quickseats.core.redis import get_redis

    async def override_get_session():
        async with session_factory() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise

    def override_get_redis():
        return redis_client

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_redis] = override_get_redis
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_artifact_storage] = lambda: artifact_storage
    app.dependency_overrides[deps.get_payment_gateway] = lambda: gateway
    app.dependency_overrides[health.get_health_checker] = lambda: HealthChecker(redis_client, session_factory)

    try:
        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
