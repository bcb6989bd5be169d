"""
Shared FastAPI dependencies

The database session is cached per request, so every service built for a
request shares one session and one transaction boundary.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quickseats.core.database import get_session
from quickseats.core.redis import RedisManager, get_redis
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
from quickseats.services.sweeper import ReservationSweeper


async def get_redis_manager(redis_client=Depends(get_redis)) -> RedisManager:
    return RedisManager(redis_client)


def get_inventory_store(
    db: AsyncSession = Depends(get_session),
    redis_manager: RedisManager = Depends(get_redis_manager),
) -> InventoryStore:
    return InventoryStore(db, redis_manager)


def get_notifier() -> EmailService:
    return EmailService()


def get_artifact_storage() -> LocalArtifactStorage:
    return LocalArtifactStorage()


def get_payment_gateway() -> PaymentGateway:
    return PaymentGateway()


def get_catalog_service(
    db: AsyncSession = Depends(get_session),
    store: InventoryStore = Depends(get_inventory_store),
) -> CatalogService:
    return CatalogService(db, store)


def get_availability_service(
    db: AsyncSession = Depends(get_session),
    store: InventoryStore = Depends(get_inventory_store),
) -> AvailabilityService:
    return AvailabilityService(db, store)


def get_seat_hold_service(
    db: AsyncSession = Depends(get_session),
    store: InventoryStore = Depends(get_inventory_store),
) -> SeatHoldService:
    return SeatHoldService(db, store)


def get_booking_service(
    db: AsyncSession = Depends(get_session),
    store: InventoryStore = Depends(get_inventory_store),
    notifier: EmailService = Depends(get_notifier),
    storage: LocalArtifactStorage = Depends(get_artifact_storage),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> BookingService:
    fulfillment = FulfillmentService(db, notifier, storage)
    return BookingService(db, store, fulfillment, gateway)


def get_cancellation_service(
    db: AsyncSession = Depends(get_session),
    store: InventoryStore = Depends(get_inventory_store),
    notifier: EmailService = Depends(get_notifier),
) -> CancellationService:
    return CancellationService(db, store, notifier)


def get_issuance_service(
    db: AsyncSession = Depends(get_session),
    store: InventoryStore = Depends(get_inventory_store),
) -> IssuanceService:
    return IssuanceService(db, store)


def get_sweeper(
    db: AsyncSession = Depends(get_session),
    store: InventoryStore = Depends(get_inventory_store),
) -> ReservationSweeper:
    return ReservationSweeper(db, store)
